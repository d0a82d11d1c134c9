from __future__ import annotations

import pytest

from ilsbridge.api.alma.exception import AlmaServerError
from tests.fixtures.alma import AlmaFixture


class TestAlmaCoursesAPI:
    def test_get_courses(self, alma: AlmaFixture) -> None:
        alma.queue("courses.xml")
        assert alma.api.get_courses() == {
            "6101": "Introduction to History",
            "6102": "Modernist Fiction",
        }
        assert alma.requests == [alma.url("/courses")]

    def test_get_courses_empty(self, alma: AlmaFixture) -> None:
        alma.http_client.queue_response(200, content='<courses total_record_count="0"/>')
        assert alma.api.get_courses() == {}

    def test_find_reserves(self, alma: AlmaFixture) -> None:
        alma.queue("reading_lists.xml")
        alma.queue("citations_week_one.xml")
        alma.queue("citations_week_two.xml")

        reserves = alma.api.find_reserves("6102")

        assert alma.requests == [
            alma.url("/courses/6102/reading-lists"),
            alma.url("/courses/6102/reading-lists/6201/citations"),
            alma.url("/courses/6102/reading-lists/6202/citations"),
        ]
        assert list(reserves) == ["6301", "6302"]
        assert reserves["6301"].title == "Mrs Dalloway"
        assert reserves["6301"].author == "Woolf, Virginia"
        assert reserves["6301"].mms_id == "995555"
        assert reserves["6301"].isbn is None
        assert reserves["6302"].isbn == "9780156907392"

    def test_find_reserves_without_lists(self, alma: AlmaFixture) -> None:
        alma.http_client.queue_response(204)
        assert alma.api.find_reserves("6101") == {}
        assert len(alma.requests) == 1

    def test_failed_citations_call(self, alma: AlmaFixture) -> None:
        alma.queue("reading_lists.xml")
        alma.http_client.queue_response(502)
        with pytest.raises(AlmaServerError):
            alma.api.find_reserves("6102")
