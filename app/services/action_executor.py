import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Generic, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import (
    ContentRejectedError,
    PersistenceError,
    RequestTimeoutError,
    ToneWiseError,
    UnknownError,
)
from app.core.tier_enforcement import TierEnforcement
from app.models.usage import FeatureKind
from app.models.user import User
from app.services.content_filter import moderate
from app.services.usage_ledger import UsageLedger
from app.utils.audit_logger import audit_logger

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT")
OutputT = TypeVar("OutputT")


@dataclass
class ActionResult(Generic[OutputT]):
    output: OutputT
    record_id: Optional[str]
    processing_time_ms: int
    usage_recorded: bool


class MeteredAction(ABC, Generic[RequestT, OutputT]):
    """
    Base class for every billable action.

    ``execute`` runs the fixed sequence: validate, moderate, check
    entitlement, call the provider under a timeout, check the output shape,
    persist, then count usage. Subclasses fill in the feature-specific steps.
    """

    feature: FeatureKind

    def __init__(self, db: Session):
        self.db = db

    @property
    @abstractmethod
    def timeout_seconds(self) -> float:
        pass

    @abstractmethod
    def validate(self, request: RequestT) -> RequestT:
        """Return the cleaned request or raise InputValidationError"""
        pass

    @abstractmethod
    def moderation_text(self, request: RequestT) -> str:
        pass

    @abstractmethod
    def call_provider(self, request: RequestT) -> Awaitable[Any]:
        pass

    @abstractmethod
    def parse_output(self, raw: Any) -> OutputT:
        """Check the provider output; raise MalformedResponseError if it is unusable"""
        pass

    def persist(self, user: User, request: RequestT, output: OutputT, processing_time_ms: int) -> Optional[str]:
        """Store the result and return its id. Actions without a stored result return None."""
        return None

    async def execute(self, user: User, request: RequestT) -> ActionResult[OutputT]:
        started = time.monotonic()
        request = self.validate(request)

        text = self.moderation_text(request)
        verdict = moderate(text)
        if not verdict.is_appropriate:
            logger.warning(f"Rejected {self.feature.value} input from user {user.id}: {verdict.reason}")
            audit_logger.log_content_rejected(user.id, self.feature.value, verdict.category, text)
            raise ContentRejectedError(verdict.reason, context={"category": verdict.category})

        decision = TierEnforcement.check_entitlement(user, self.feature, self.db)
        if decision.bypassed:
            audit_logger.log_demo_bypass(user.id, self.feature.value)
        if not decision.allowed:
            logger.info(f"Denied {self.feature.value} for user {user.id}: {decision.reason}")
            audit_logger.log_entitlement_denied(
                user.id,
                self.feature.value,
                decision.tier.value if decision.tier else None,
                decision.reason,
            )
            decision.raise_for_denial(self.feature)

        try:
            raw = await asyncio.wait_for(self.call_provider(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"{self.feature.value} provider call exceeded {self.timeout_seconds}s for user {user.id}")
            raise RequestTimeoutError(f"{self.feature.value} timeout after {self.timeout_seconds}s")
        except ToneWiseError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected {self.feature.value} provider failure for user {user.id}")
            raise UnknownError(f"Unexpected provider failure: {type(e).__name__}")

        output = self.parse_output(raw)
        processing_time_ms = int((time.monotonic() - started) * 1000)

        try:
            record_id = self.persist(user, request, output, processing_time_ms)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save {self.feature.value} result for user {user.id}: {str(e)}")
            raise PersistenceError(f"Failed to save {self.feature.value} result")

        usage_recorded = UsageLedger.record_usage(user.id, self.feature, self.db)

        return ActionResult(
            output=output,
            record_id=record_id,
            processing_time_ms=processing_time_ms,
            usage_recorded=usage_recorded,
        )
