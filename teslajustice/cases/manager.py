"""
Moderator-facing case management: edits, status changes, duplicate marking
and browsing. Every change is recorded as a case update.
"""

import logging
import math
from typing import Optional

from teslajustice.core.config import CASE_STATUSES
from teslajustice.core.errors import InvalidStatusError, TeslaJusticeError
from teslajustice.data.repository import CaseRepository
from teslajustice.data.schemas import (
    CaseDetail,
    CaseMediaResponse,
    CaseResponse,
    CaseUpdateResponse,
    RelatedCaseResponse,
)

logger = logging.getLogger(__name__)


class CaseManager:
    def __init__(self, repository: CaseRepository):
        self.repository = repository

    def update_case(self, case_id: int, fields: dict) -> CaseResponse:
        """Apply field changes and log what kind of change it was."""
        fields = {k: v for k, v in fields.items() if v is not None}
        if "status" in fields and fields["status"] not in CASE_STATUSES:
            raise InvalidStatusError(fields["status"])

        previous = self.repository.get_case(case_id).status
        case = self.repository.update_case_fields(case_id, fields)

        if fields.get("status") and fields["status"] != "reported":
            update_type = "status_change"
            title = f"Status changed to {fields['status']}"
            description = f'The case status was updated to "{fields["status"]}".'
            statuses = {"previous_status": previous, "new_status": fields["status"]}
        elif fields.get("location_city") or fields.get("location_state"):
            update_type = "location_update"
            title = "Location information updated"
            description = "The location information for this case was updated."
            statuses = {}
        else:
            update_type = "other"
            title = "Case updated"
            description = "The case was updated with new information."
            statuses = {}

        self.repository.append_update(case_id, update_type, title, description,
                                      importance=3, **statuses)
        return CaseResponse.model_validate(case)

    def update_case_status(self, case_id: int, new_status: str, reason: str = "") -> CaseResponse:
        if new_status not in CASE_STATUSES:
            raise InvalidStatusError(new_status)

        case = self.repository.get_case(case_id)
        previous = case.status
        case = self.repository.update_case_fields(case_id, {"status": new_status})
        self.repository.append_update(
            case_id,
            "status_change",
            f"Status changed to {new_status}",
            reason or f'The case status was updated to "{new_status}".',
            previous_status=previous,
            new_status=new_status,
            importance=4,
        )
        logger.info(f"Case #{case_id} status {previous} -> {new_status}")
        return CaseResponse.model_validate(case)

    def mark_duplicate(self, case_id: int, duplicate_of: int) -> CaseResponse:
        """Flag a case as a duplicate of another. The case itself is kept."""
        if case_id == duplicate_of:
            raise TeslaJusticeError("A case cannot be a duplicate of itself")
        self.repository.get_case(duplicate_of)
        case = self.repository.update_case_fields(
            case_id, {"is_duplicate": True, "duplicate_of": duplicate_of}
        )
        self.repository.append_update(
            case_id, "other", "Marked as duplicate",
            f"This case was marked as a duplicate of case #{duplicate_of}.",
        )
        return CaseResponse.model_validate(case)

    def get_case_with_details(self, case_id: int) -> CaseDetail:
        case = self.repository.get_case(case_id)
        base = CaseResponse.model_validate(case).model_dump()
        return CaseDetail(
            **base,
            media=[CaseMediaResponse.model_validate(m) for m in self.repository.get_media(case_id)],
            updates=[CaseUpdateResponse.model_validate(u) for u in self.repository.get_updates(case_id)],
            related_cases=[RelatedCaseResponse.model_validate(r)
                           for r in self.repository.get_related(case_id)],
        )

    def list_cases(self, filters: Optional[dict] = None, page: int = 1, page_size: int = 20) -> dict:
        filters = filters or {}
        cases, total = self.repository.list_cases(
            status=filters.get("status"),
            target_type=filters.get("target_type"),
            location_city=filters.get("location_city"),
            location_state=filters.get("location_state"),
            search=filters.get("search"),
            page=page,
            page_size=page_size,
        )
        return {
            "cases": [CaseResponse.model_validate(c).model_dump(mode="json") for c in cases],
            "pagination": {
                "page": page,
                "page_size": page_size,
                "total_count": total,
                "total_pages": math.ceil(total / page_size) if page_size else 0,
            },
        }
