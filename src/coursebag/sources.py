"""Data source classes for educator reports.

Each DataSource wraps a DataFrame and metadata built from an API payload,
providing a consistent interface for fetching, normalizing student identity
and exporting to CSV.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import pandas as pd
from loguru import logger

from coursebag.api.client import ApiClient, unwrap_data

USERNAME_COLNAME = "Username"


class DataSource(ABC):
    """Base class for report data fetched from the backend.

    Attributes:
        data (pd.DataFrame): The source data.
        metadata (dict): Source metadata (endpoint, row count, etc.).
    """

    endpoint: str

    def __init__(self):
        self.data: pd.DataFrame = pd.DataFrame()
        self.metadata: dict = {}

    @classmethod
    @abstractmethod
    def from_records(cls, records: list[dict[str, Any]]) -> "DataSource":
        """Build an instance from the records of an API response.

        Args:
            records (list[dict]): Documents as returned by the backend.

        Returns:
            DataSource: An instance with data and metadata populated.
        """
        raise NotImplementedError

    @classmethod
    def fetch(cls, client: ApiClient) -> "DataSource":
        """Fetch the source's endpoint and build an instance from it.

        Raises:
            ValueError: If the response does not contain a list of records.
        """
        payload = unwrap_data(client.get(cls.endpoint, requires_auth=True))
        if not isinstance(payload, list):
            raise ValueError(f"Expected a list of records from {cls.endpoint}")
        obj = cls.from_records(payload)
        obj.metadata["source"] = cls.endpoint
        logger.info(f"Loaded {len(obj.data)} rows from {cls.endpoint}")
        return obj

    def resolve_identity(self, username_col: str = USERNAME_COLNAME) -> None:
        """Fill in usernames from email addresses where they are missing.

        Raises:
            ValueError: If there is neither a username nor an email column.
        """
        if "Email" in self.data.columns:
            derived = self.data["Email"].str.split("@").str[0]
            if username_col in self.data.columns:
                self.data[username_col] = self.data[username_col].fillna(derived)
            else:
                self.data[username_col] = derived
        elif username_col not in self.data.columns:
            raise ValueError(f"{type(self).__name__} must have '{username_col}' or 'Email' column")
        self.metadata["username_col"] = username_col

    def get_students(self) -> set:
        """Return the set of unique student identifiers in this source.

        Assumes resolve_identity() has been called.
        """
        username_col = self.metadata.get("username_col", USERNAME_COLNAME)
        if username_col not in self.data.columns:
            return set()
        return set(self.data[username_col].dropna().unique())

    def to_csv(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        self.data.to_csv(path, index=False)


class EnrollmentData(DataSource):
    """Enrollments in the courses taught by the logged-in educator."""

    endpoint = "/educator/enrollments"

    COLUMNS = [
        "Username",
        "Name",
        "Email",
        "Course",
        "Status",
        "Progress",
        "Enrolled At",
        "Last Active",
        "Enrollment",
    ]

    @classmethod
    def from_records(cls, records: list[dict[str, Any]]) -> "EnrollmentData":
        rows = []
        for record in records:
            user = record.get("user") or {}
            course = record.get("course") or {}
            rows.append(
                {
                    "Username": user.get("username"),
                    "Name": user.get("name"),
                    "Email": user.get("email"),
                    "Course": course.get("title"),
                    "Status": record.get("status"),
                    "Progress": float(record.get("progress") or 0),
                    "Enrolled At": pd.to_datetime(record.get("enrolledAt"), utc=True),
                    "Last Active": pd.to_datetime(record.get("lastActive"), utc=True),
                    "Enrollment": record.get("_id"),
                }
            )
        obj = cls()
        obj.data = pd.DataFrame(rows, columns=cls.COLUMNS)
        obj.metadata = {"type": cls.__name__, "rows": len(rows)}
        return obj


class CertificateData(DataSource):
    """Certificates issued to the logged-in user."""

    endpoint = "/certificates"

    COLUMNS = ["Certificate", "Course", "Issued At", "Grade", "Hours"]

    @classmethod
    def from_records(cls, records: list[dict[str, Any]]) -> "CertificateData":
        rows = []
        for record in records:
            course = record.get("course")
            metadata = record.get("metadata") or {}
            rows.append(
                {
                    "Certificate": record.get("certificateId"),
                    "Course": course.get("title") if isinstance(course, dict) else course,
                    "Issued At": pd.to_datetime(record.get("issueDate") or record.get("createdAt"), utc=True),
                    "Grade": metadata.get("grade"),
                    "Hours": metadata.get("hoursCompleted"),
                }
            )
        obj = cls()
        obj.data = pd.DataFrame(rows, columns=cls.COLUMNS)
        obj.metadata = {"type": cls.__name__, "rows": len(rows)}
        return obj
