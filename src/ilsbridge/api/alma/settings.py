from __future__ import annotations

from typing import Annotated, ClassVar

import pytz
from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator
from pydantic_settings import NoDecode, SettingsConfigDict

from ilsbridge.api.alma.constants import (
    DIGITAL_DELIVERY_ID_TOKEN,
    InventoryType,
    LoginMethod,
)
from ilsbridge.service.configuration.service_configuration import (
    ServiceConfiguration,
)
from ilsbridge.util.pydantic import HttpUrl


class NewUserSettings(BaseModel):
    """Values written into every account created through create_alma_user.

    All but the two periods are required at the time an account is created,
    not when settings load, so that a deployment without self registration
    does not have to configure them.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    record_type: str | None = None
    user_group: str | None = None
    preferred_language: str | None = None
    account_type: str | None = None
    status: str | None = None
    email_type: str | None = None
    id_type: str | None = None
    # ISO-8601 periods, counted from the moment the account is created.
    expiry_date: str | None = "P1Y"
    purge_date: str | None = None

    REQUIRED: ClassVar[tuple[str, ...]] = (
        "record_type",
        "user_group",
        "preferred_language",
        "account_type",
        "status",
        "email_type",
        "id_type",
    )


class AlmaSettings(ServiceConfiguration):
    api_base_url: HttpUrl
    api_key: str = Field(min_length=1)
    http_timeout: PositiveInt = 30

    # Colon separated in the environment, e.g. "physical:electronic".
    inventory_types: Annotated[tuple[InventoryType, ...], NoDecode] = (
        InventoryType.physical,
        InventoryType.digital,
        InventoryType.electronic,
    )
    digital_delivery_url: str | None = None
    holds_item_limit: PositiveInt = 10
    login_method: LoginMethod = LoginMethod.barcode

    # 1 runs the per-item loan and request-option lookups one after another.
    fanout_workers: PositiveInt = 1

    display_date_format: str = "%m-%d-%Y"
    display_time_format: str = "%H:%M"
    display_timezone: str = "UTC"

    transactions_page_size: PositiveInt = 50
    transactions_max_results: PositiveInt = 100

    new_user: NewUserSettings = NewUserSettings()

    model_config = SettingsConfigDict(env_prefix="ILSBRIDGE_ALMA_")

    @field_validator("inventory_types", mode="before")
    @classmethod
    def _split_inventory_types(cls, value: object) -> object:
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split(":") if part.strip())
        return value

    @field_validator("inventory_types")
    @classmethod
    def _sort_inventory_types(
        cls, value: tuple[InventoryType, ...]
    ) -> tuple[InventoryType, ...]:
        if not value:
            raise ValueError("at least one inventory type is required")
        return tuple(t for t in InventoryType if t in value)

    @field_validator("digital_delivery_url")
    @classmethod
    def _check_delivery_token(cls, value: str | None) -> str | None:
        if not value:
            return None
        if DIGITAL_DELIVERY_ID_TOKEN not in value:
            raise ValueError(f"must contain the {DIGITAL_DELIVERY_ID_TOKEN} token")
        return value

    @field_validator("display_timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"unknown time zone '{value}'") from None
        return value
