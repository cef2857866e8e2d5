"""
Leadership service module.

Read-only views over stored survey progress and results for pastors and
ministry leaders: the pastoral care roster, candidates for a ministry and
congregation-wide analytics.
"""
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session, joinedload
from ..models import SurveyProgress, SurveyResult, User

STATUS_NOT_STARTED = "not_started"
STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"
SURVEY_STATUSES = (STATUS_NOT_STARTED, STATUS_IN_PROGRESS, STATUS_COMPLETED)

TOP_GIFTS_SHOWN = 3


def survey_status(user: User) -> str:
    if user.survey_result is not None:
        return STATUS_COMPLETED
    if user.survey_progress is not None:
        return STATUS_IN_PROGRESS
    return STATUS_NOT_STARTED


def _paginate(items: List[Any], page: int, limit: int) -> Dict[str, Any]:
    total = len(items)
    offset = (page - 1) * limit
    return {
        "items": items[offset:offset + limit],
        "total": total,
        "page": page,
        "limit": limit,
        "pages": (total + limit - 1) // limit
    }


class LeadershipService:
    """Service class for leadership dashboards."""

    @staticmethod
    def _active_users(db: Session) -> List[User]:
        return (
            db.query(User)
            .options(joinedload(User.survey_progress), joinedload(User.survey_result))
            .filter(User.is_archived.is_(False))
            .order_by(User.id.asc())
            .all()
        )

    @staticmethod
    def pastoral_care_overview(
        db: Session,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> Dict[str, Any]:
        """
        Survey status of every active member, for pastoral follow-up.

        Args:
            db: Database session
            status: Only include members in this survey status
            page: 1-based page number
            limit: Page size

        Raises:
            ValueError: for an unknown status filter
        """
        if status is not None and status not in SURVEY_STATUSES:
            raise ValueError(f"Unknown survey status '{status}'")

        rows = []
        for user in LeadershipService._active_users(db):
            member_status = survey_status(user)
            if status and member_status != status:
                continue

            result = user.survey_result
            progress = user.survey_progress
            row = {
                "user_id": user.id,
                "name": user.display_name,
                "email": user.email,
                "role": user.role,
                "status": member_status,
                "answered_count": len(progress.answers or {}) if progress else 0,
                "top_gifts": [],
                "primary_ministries": [],
                "personality_type": None,
                "last_activity": None
            }
            if result is not None:
                row["answered_count"] = len(result.raw_answers or {})
                row["top_gifts"] = [g["name"] for g in (result.spiritual_gifts or [])[:TOP_GIFTS_SHOWN]]
                row["primary_ministries"] = [
                    m["name"] for m in (result.ministry_matches or []) if m.get("is_primary")
                ]
                row["personality_type"] = (result.personality_profile or {}).get("type")
                row["last_activity"] = result.completed_at
            elif progress is not None:
                row["last_activity"] = progress.updated_at or progress.created_at
            rows.append(row)

        return _paginate(rows, page, limit)

    @staticmethod
    def ministry_candidates(db: Session, ministry_id: str) -> List[Dict[str, Any]]:
        """
        Members with results, ranked by their match score for one ministry.

        The caller is responsible for checking the ministry exists.
        """
        results = (
            db.query(SurveyResult)
            .join(User, SurveyResult.user_id == User.id)
            .options(joinedload(SurveyResult.user))
            .filter(User.is_archived.is_(False))
            .order_by(SurveyResult.id.asc())
            .all()
        )

        candidates = []
        for result in results:
            match = next(
                (m for m in (result.ministry_matches or []) if m.get("ministry_id") == ministry_id),
                None
            )
            if match is None:
                continue
            candidates.append({
                "user_id": result.user_id,
                "name": result.user.display_name,
                "email": result.user.email,
                "score": match["score"],
                "is_primary": match.get("is_primary", False),
                "requires_skill_verification": match.get("requires_skill_verification", False),
                "growth_pathway": match.get("growth_pathway"),
                "why_matched": match.get("why_matched", ""),
                "completed_at": result.completed_at
            })

        return sorted(candidates, key=lambda c: c["score"], reverse=True)

    @staticmethod
    def get_analytics(db: Session) -> Dict[str, Any]:
        """
        Aggregated survey outcomes across active members.

        Returns:
            Dictionary containing analytics data:
            - total_results: int
            - in_progress: int
            - gift_averages: Dict[str, float]
            - top_gifts_distribution: Dict[str, int]
            - primary_ministries_distribution: Dict[str, int]
            - personality_types_distribution: Dict[str, int]
        """
        results = (
            db.query(SurveyResult)
            .join(User, SurveyResult.user_id == User.id)
            .filter(User.is_archived.is_(False))
            .all()
        )
        in_progress = (
            db.query(SurveyProgress)
            .join(User, SurveyProgress.user_id == User.id)
            .filter(SurveyProgress.is_complete.is_(False), User.is_archived.is_(False))
            .count()
        )

        total_results = len(results)
        if total_results == 0:
            return {
                "total_results": 0,
                "in_progress": in_progress,
                "gift_averages": {},
                "top_gifts_distribution": {},
                "primary_ministries_distribution": {},
                "personality_types_distribution": {}
            }

        gift_totals: Dict[str, float] = {}
        top_gifts_counts: Dict[str, int] = {}
        ministry_counts: Dict[str, int] = {}
        type_counts: Dict[str, int] = {}

        for result in results:
            gifts = result.spiritual_gifts or []
            for gift in gifts:
                gift_totals[gift["gift"]] = gift_totals.get(gift["gift"], 0) + gift["score"]

            # Gifts are stored highest first
            if gifts and gifts[0]["score"] > 0:
                top = gifts[0]["gift"]
                top_gifts_counts[top] = top_gifts_counts.get(top, 0) + 1

            for match in result.ministry_matches or []:
                if match.get("is_primary"):
                    key = match["ministry_id"]
                    ministry_counts[key] = ministry_counts.get(key, 0) + 1

            personality_type = (result.personality_profile or {}).get("type")
            if personality_type:
                type_counts[personality_type] = type_counts.get(personality_type, 0) + 1

        def by_count(counts: Dict[str, int]) -> Dict[str, int]:
            return dict(sorted(counts.items(), key=lambda item: item[1], reverse=True))

        return {
            "total_results": total_results,
            "in_progress": in_progress,
            "gift_averages": {
                gift: round(total / total_results, 1)
                for gift, total in gift_totals.items()
            },
            "top_gifts_distribution": by_count(top_gifts_counts),
            "primary_ministries_distribution": by_count(ministry_counts),
            "personality_types_distribution": by_count(type_counts)
        }
