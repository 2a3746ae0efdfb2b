"""
Process-wide application context.

One ``AppContext`` is built per FastAPI app and stored on ``app.state.context``.
``startup()`` runs from the lifespan before the first request and
``shutdown()`` after the last one; request handlers reach the context through
the dependencies in ``taskminder.dependencies``.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from taskminder.config import Settings
from taskminder.database import Base, make_engine, make_sessionmaker
from taskminder.services.auth import TokenIssuer
from taskminder.services.notifier import EmailNotifier, Notifier
from taskminder.services.scheduler import ReminderScheduler

# register every table on Base.metadata
import taskminder.models.user  # noqa: F401
import taskminder.models.tasks  # noqa: F401

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    engine: AsyncEngine
    sessionmaker: async_sessionmaker
    tokens: TokenIssuer
    reminders: ReminderScheduler

    @classmethod
    def from_settings(cls, settings: Settings, notifier: Notifier | None = None) -> "AppContext":
        engine = make_engine(settings.database_url)
        return cls(
            settings=settings,
            engine=engine,
            sessionmaker=make_sessionmaker(engine),
            tokens=TokenIssuer(
                settings.SECRET_KEY,
                algorithm=settings.ALGORITHM,
                expire_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
            ),
            reminders=ReminderScheduler(notifier or EmailNotifier(settings)),
        )

    @property
    def session_lifetime(self) -> timedelta:
        return timedelta(minutes=self.settings.SESSION_EXPIRE_MINUTES)

    async def startup(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.reminders.start()
        logger.info("Application context started")

    async def shutdown(self):
        self.reminders.shutdown()
        await self.engine.dispose()
        logger.info("Application context shut down")
