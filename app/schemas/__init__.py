"""Pydantic schemas for request/response validation."""

from app.schemas.signal import RepFeature, Zone, ZoneRequest, ZoneResponse
from app.schemas.recovery import (
    LifterLevel,
    LifterProfile,
    ReadinessPoint,
    RecoveryEstimate,
    RecoveryRequest,
    RecoveryWhatIf,
    RecoveryWhatIfRequest,
    SessionFeatures,
    SessionTag,
    SignalDelta,
)
from app.schemas.plan import (
    DecisionContext,
    DecisionOption,
    DecisionTrace,
    PlanMode,
    PlanResult,
    StrengthPlan,
)
from app.schemas.policy import (
    AppSurface,
    CoachObjective,
    CoachReplyResult,
    CoachSnapshot,
    ExperienceBand,
    Policy,
    PolicyOverride,
    StructuredReply,
    Topic,
)
from app.schemas.coach import (
    CoachJSON,
    HomeCoachRequest,
    QuestionJSON,
    SuggestionJSON,
    WhatIfNumeric,
    WhatIfQual,
)

__all__ = [
    "RepFeature",
    "Zone",
    "ZoneRequest",
    "ZoneResponse",
    "LifterLevel",
    "LifterProfile",
    "ReadinessPoint",
    "RecoveryEstimate",
    "RecoveryRequest",
    "RecoveryWhatIf",
    "RecoveryWhatIfRequest",
    "SessionFeatures",
    "SessionTag",
    "SignalDelta",
    "DecisionContext",
    "DecisionOption",
    "DecisionTrace",
    "PlanMode",
    "PlanResult",
    "StrengthPlan",
    "AppSurface",
    "CoachObjective",
    "CoachReplyResult",
    "CoachSnapshot",
    "ExperienceBand",
    "Policy",
    "PolicyOverride",
    "StructuredReply",
    "Topic",
    "CoachJSON",
    "HomeCoachRequest",
    "QuestionJSON",
    "SuggestionJSON",
    "WhatIfNumeric",
    "WhatIfQual",
]
