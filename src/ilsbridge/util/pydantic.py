from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    BeforeValidator,
    GetCoreSchemaHandler,
    HttpUrl as HttpUrlPydantic,
    RedisDsn as RedisDsnPydantic,
)
from pydantic_core import CoreSchema, core_schema


# Pydantic v2 network types no longer inherit from str. These annotations
# validate the value as the given URL type, then hand it back as a plain
# string with the trailing slash that Pydantic appends removed.
# Adapted from https://github.com/pydantic/pydantic/issues/7186#issuecomment-1690235887
class Chain:
    def __init__(self, validations: list[Any]) -> None:
        self.validations = validations

    def __get_pydantic_core_schema__(
        self, source_type: Any, handler: GetCoreSchemaHandler
    ) -> CoreSchema:
        return core_schema.chain_schema(
            [
                *(handler.generate_schema(v) for v in self.validations),
                handler(source_type),
            ]
        )


def strip_slash(value: str) -> str:
    return value.rstrip("/")


RedisDsn = Annotated[
    str, AfterValidator(strip_slash), BeforeValidator(str), Chain([RedisDsnPydantic])
]

HttpUrl = Annotated[
    str, AfterValidator(strip_slash), BeforeValidator(str), Chain([HttpUrlPydantic])
]
