"""
Engine bootstrap.

Configures logging from the runtime settings and wires the commission
engine service to the SQLAlchemy repositories of one session.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mlm_engine.config.commission_structures import CommissionSettings
from mlm_engine.config.settings import Settings, settings as default_settings
from mlm_engine.models.session import create_session_factory
from mlm_engine.repositories.commission_record_repository import CommissionRecordRepository
from mlm_engine.repositories.member_repository import MemberRepository
from mlm_engine.repositories.purchase_repository import PurchaseRepository
from mlm_engine.services.commission_engine import CommissionEngineService
from mlm_engine.utils.logging import setup_logging


def initialize(
    engine_settings: Settings | None = None,
) -> async_sessionmaker[AsyncSession] | None:
    """
    Set up logging and the database session factory.

    Returns:
        Session factory, or None when no database URL is configured
    """
    engine_settings = engine_settings or default_settings
    setup_logging(engine_settings.log_level, engine_settings.log_file)

    if not engine_settings.root_member_id:
        logger.warning(
            "MLM_ROOT_MEMBER_ID is not configured: sponsorless placements and "
            "the classic system fund have no recipient"
        )
    if not engine_settings.database_url:
        logger.warning("MLM_DATABASE_URL is not configured, persistence disabled")
        return None

    session_factory = create_session_factory(
        engine_settings.database_url, echo=engine_settings.database_echo
    )
    logger.info("Commission engine initialized")
    return session_factory


def build_service(
    session: AsyncSession,
    commission_settings: CommissionSettings | None = None,
    engine_settings: Settings | None = None,
) -> CommissionEngineService:
    """Commission engine service backed by the repositories of ``session``."""
    return CommissionEngineService(
        MemberRepository(session),
        transaction_sink=CommissionRecordRepository(session),
        purchase_ledger=PurchaseRepository(session),
        commission_settings=commission_settings,
        engine_settings=engine_settings,
    )
