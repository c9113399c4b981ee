import logging

from sqlalchemy.orm import Session

from portalapi.config import Settings
from portalapi.models.user import UserRole
from portalapi.repositories.user_repository import UserRepository
from portalapi.schemas.points import LeaderboardEntry, LeaderboardRank, LeaderboardResponse
from portalapi.schemas.user import UserSummary
from portalapi.services.balance_projection import BalanceProjection
from portalapi.services.period_service import PeriodService

logger = logging.getLogger(__name__)


class LeaderboardService:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.user_repo = UserRepository(db)
        self.period_service = PeriodService(db)
        self.projection = BalanceProjection(db)

    def get_leaderboard(self, actor) -> LeaderboardResponse:
        """Students ranked by active-period experience, ties broken by id"""
        period = self.period_service.get_active_period()
        period_id = period.id if period else None

        students = self.user_repo.get_students()
        experience = self.projection.calculate_multiple_user_experience(
            [student.id for student in students], period_id
        )
        ranked = sorted(students, key=lambda student: (-experience[student.id], student.id))

        entries = [
            LeaderboardEntry(
                id=student.id,
                username=student.username,
                first_name=student.first_name,
                last_name=student.last_name,
                experience=experience[student.id],
                rank=index,
                tutor=UserSummary.model_validate(student.tutor) if student.tutor else None,
            )
            for index, student in enumerate(ranked, start=1)
        ]

        user_rank = None
        if UserRole(actor.role) == UserRole.STUDENT:
            own = next((entry for entry in entries if entry.id == actor.id), None)
            if own:
                user_rank = LeaderboardRank(rank=own.rank, experience=own.experience)

        return LeaderboardResponse(
            period_id=period_id,
            leaderboard=entries[: self.settings.LEADERBOARD_SIZE],
            user_rank=user_rank,
            total=len(entries),
        )
