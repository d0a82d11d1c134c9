from __future__ import annotations

from urllib.parse import quote

from ilsbridge.api.alma.models import CitationMetadata, Citations, Courses, ReadingLists
from ilsbridge.api.alma.requests import AlmaRequests
from ilsbridge.util.log import LoggerMixin


class AlmaCoursesAPI(LoggerMixin):
    """Course reserves, read from the Alma courses API."""

    def __init__(self, requests: AlmaRequests) -> None:
        self.requests = requests

    def get_courses(self) -> dict[str, str]:
        """Map of course id to course name."""
        courses = self.requests.fetch(Courses, "/courses")
        if courses is None:
            return {}
        return {
            course.id: course.name or ""
            for course in courses.courses
            if course.id is not None
        }

    def find_reserves(self, course_id: str) -> dict[str, CitationMetadata]:
        """Every citation on every reading list of a course, keyed by
        citation id."""
        course_path = f"/courses/{quote(course_id, safe='')}/reading-lists"
        lists = self.requests.fetch(ReadingLists, course_path)
        if lists is None:
            return {}

        reserves: dict[str, CitationMetadata] = {}
        for reading_list in lists.reading_lists:
            if reading_list.id is None:
                continue
            citations = self.requests.fetch(
                Citations, f"{course_path}/{quote(reading_list.id, safe='')}/citations"
            )
            if citations is None:
                continue
            for citation in citations.citations:
                if citation.id is not None:
                    reserves[citation.id] = citation.metadata
        self.log.debug(f"Found {len(reserves)} reserves for course {course_id}")
        return reserves
