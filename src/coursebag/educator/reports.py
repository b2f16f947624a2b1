"""Educator reports built from enrollment data."""

from pathlib import Path
from typing import Any

import pandas as pd
from loguru import logger

from coursebag.api.client import ApiClient, unwrap_data
from coursebag.sources import EnrollmentData

ENROLLMENT_STATUSES = ("approved", "rejected", "pending")


class EnrollmentReport:
    """Per-course enrollment summary for an educator.

    Attributes:
        enrollments: The underlying enrollment rows.
    """

    def __init__(self, enrollments: EnrollmentData):
        self.enrollments = enrollments

    @classmethod
    def fetch(cls, client: ApiClient) -> "EnrollmentReport":
        enrollments = EnrollmentData.fetch(client)
        enrollments.resolve_identity()
        return cls(enrollments)

    def summary(self) -> pd.DataFrame:
        """One row per course: student count, active and completed counts, mean progress."""
        df = self.enrollments.data
        if df.empty:
            return pd.DataFrame(columns=["Course", "Students", "Active", "Completed", "Mean Progress"])
        grouped = df.groupby("Course", dropna=False)
        summary = pd.DataFrame(
            {
                "Students": grouped.size(),
                "Active": grouped["Status"].apply(lambda s: int((s == "active").sum())),
                "Completed": grouped["Status"].apply(lambda s: int((s == "completed").sum())),
                "Mean Progress": grouped["Progress"].mean().round(2),
            }
        ).reset_index()
        return summary.sort_values("Course", ignore_index=True)

    def to_csv(self, path: Path, summary: bool = False) -> None:
        """Write the enrollment rows, or the per-course summary, to CSV."""
        path.parent.mkdir(parents=True, exist_ok=True)
        df = self.summary() if summary else self.enrollments.data
        logger.info(f"Writing {len(df)} rows to {path}")
        df.to_csv(path, index=False)


def set_enrollment_status(client: ApiClient, enrollment_id: str, status: str) -> Any:
    """Approve, reject or reset an enrollment request.

    Args:
        client: An authenticated educator client.
        enrollment_id: The enrollment (progress record) id.
        status: One of `approved`, `rejected`, `pending`.

    Returns:
        The updated enrollment.

    Raises:
        ValueError: If `status` is not a recognised value.
    """
    if status not in ENROLLMENT_STATUSES:
        raise ValueError(
            f"Invalid status value: {status}. Expected one of {', '.join(ENROLLMENT_STATUSES)}."
        )
    payload = client.put(f"/educator/enrollments/{enrollment_id}/status", {"status": status}, requires_auth=True)
    client.cache.invalidate(EnrollmentData.endpoint)
    logger.info(f"Enrollment {enrollment_id} set to {status}")
    return unwrap_data(payload)
