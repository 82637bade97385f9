"""Services package."""

from app.services.freshness_policy import is_due
from app.services.content_oracle import ContentOracle, ContentOracleError, OpenAIContentOracle
from app.services.chart_engine import ChartEngine, ChartEngineError, HttpChartEngine
from app.services.profile_store import (
    ProfileNotFoundError,
    ProfilePersistenceError,
    ProfileStore,
    SqlProfileStore,
)
from app.services.horoscope_cache import (
    RedisForecastStore,
    SharedHoroscopeCache,
    SqlForecastStore,
)
from app.services.generation_orchestrator import GenerationOrchestrator
from app.services.partner_memo_cache import PartnerMemoCache
from app.services.billing import BillingError, ChargeOutcome, StarsBalanceBilling
from app.services.regeneration_gate import DeniedReason, RegenerationGate, RegenerationResult
from app.services.onboarding_service import OnboardingService
from app.services.validation import FieldError, InputValidationError

__all__ = [
    "is_due",
    "ContentOracle",
    "ContentOracleError",
    "OpenAIContentOracle",
    "ChartEngine",
    "ChartEngineError",
    "HttpChartEngine",
    "ProfileNotFoundError",
    "ProfilePersistenceError",
    "ProfileStore",
    "SqlProfileStore",
    "RedisForecastStore",
    "SharedHoroscopeCache",
    "SqlForecastStore",
    "GenerationOrchestrator",
    "PartnerMemoCache",
    "BillingError",
    "ChargeOutcome",
    "StarsBalanceBilling",
    "DeniedReason",
    "RegenerationGate",
    "RegenerationResult",
    "OnboardingService",
    "FieldError",
    "InputValidationError",
]
