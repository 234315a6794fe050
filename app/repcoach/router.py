"""
Policy router — one voice-coaching turn.

    snapshot ──► policy ──► pain? ──► quiet surface? ──► generator ──► checks ──► text

Turn rules, in order:

1. Resolve the policy for ``(app_surface, experience_band)`` and fill an
   unset intent or change flag from the heuristics.
2. A pain flag returns the fixed safety message.  The generator is never
   called and no later rule applies.
3. A quiet surface with nothing to change stays silent.
4. Otherwise ask the generator for a HOOK / WHY / ACTION reply.  Any
   failure (transport, timeout, unparsable JSON, missing hook / action /
   topic, a silent reply, a banned or non-allowed topic) yields the
   fallback cue of the policy's objective.
5. Accepted replies are formatted and fitted to the word budget: drop the
   WHY clause first, then cut at a word boundary.

No branch raises: every turn ends in a :class:`CoachReplyResult`.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from pydantic import ValidationError

from app.core.config import settings
from app.repcoach.heuristics import resolve_snapshot
from app.repcoach.policy import SAFETY_MESSAGE, fallback_cue, resolve_policy
from app.repcoach.prompts import build_system_prompt, build_user_payload
from app.schemas.policy import (
    CoachReplyResult,
    CoachSnapshot,
    Policy,
    ReplySource,
    StructuredReply,
)
from app.services.text_generation import (
    CollaboratorError,
    Message,
    ReplyValidationError,
    TextGenerator,
    call_with_timeout,
    parse_json_object,
)

logger = logging.getLogger(__name__)

_WS_RE = re.compile(r"\s+")


# ======================================================================
# Formatting
# ======================================================================


def _collapse(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def word_count(text: str) -> int:
    return len(text.split())


def format_reply(reply: StructuredReply, include_why: bool = True) -> str:
    """``hook why action`` with whitespace collapsed."""
    parts = [reply.hook, reply.why if include_why else None, reply.action]
    return _collapse(" ".join(p.strip() for p in parts if p))


def truncate_words(text: str, max_words: int) -> str:
    return " ".join(text.split()[:max_words])


def fit_to_budget(reply: StructuredReply, word_budget: int) -> str:
    """Format ``reply`` within ``word_budget`` words."""
    full = format_reply(reply)
    if word_count(full) <= word_budget:
        return full
    compact = format_reply(reply, include_why=False)
    if word_count(compact) <= word_budget:
        return compact
    return truncate_words(compact, word_budget)


# ======================================================================
# Validation
# ======================================================================


def _rejection_reason(reply: StructuredReply, policy: Policy) -> Optional[str]:
    """Why ``reply`` cannot be spoken under ``policy``, or ``None`` if it can."""
    if reply.silent:
        return "generator chose silence on a turn that owes a message"
    if not (reply.hook and reply.hook.strip()):
        return "missing hook"
    if not (reply.action and reply.action.strip()):
        return "missing action"
    if reply.topic is None:
        return "missing topic"
    if reply.topic in policy.banned_topics:
        return f"banned topic {reply.topic.value}"
    if reply.topic not in policy.allowed_topics:
        return f"topic {reply.topic.value} not allowed"
    return None


def _request_reply(
    generator: TextGenerator,
    policy: Policy,
    snapshot: CoachSnapshot,
    timeout_s: float,
) -> StructuredReply:
    system = build_system_prompt(policy)
    messages = [Message(role="user", text=build_user_payload(snapshot))]
    result = call_with_timeout(lambda: generator.generate(system, messages), timeout_s)
    data = parse_json_object(result.text)
    try:
        return StructuredReply.model_validate(data)
    except ValidationError as exc:
        raise ReplyValidationError(f"reply has the wrong shape: {exc}") from exc


# ======================================================================
# Public API
# ======================================================================


def route_coach_reply(
    snapshot: CoachSnapshot,
    generator: TextGenerator,
    timeout_s: Optional[float] = None,
) -> CoachReplyResult:
    """Decide what, if anything, the coach says this turn."""
    policy = resolve_policy(snapshot.app_surface, snapshot.experience_band)
    snapshot = resolve_snapshot(snapshot)

    # Pain before silence: quiet surfaces still get the safety message.
    if snapshot.safety.pain_flag:
        logger.info("Pain flag on %s: safety message", snapshot.app_surface.value)
        return CoachReplyResult(speak=True, text=SAFETY_MESSAGE, source=ReplySource.SAFETY)

    if policy.silent_unless_change and not snapshot.requires_change:
        logger.debug("Quiet surface %s, no change required", snapshot.app_surface.value)
        return CoachReplyResult(speak=False, source=ReplySource.SILENT)

    fallback = CoachReplyResult(
        speak=True, text=fallback_cue(policy.objective), source=ReplySource.FALLBACK,
    )
    timeout = settings.COACH_LLM_TIMEOUT_S if timeout_s is None else timeout_s
    try:
        reply = _request_reply(generator, policy, snapshot, timeout)
    except (CollaboratorError, ReplyValidationError) as exc:
        logger.warning("Coach reply fell back (%s): %s", policy.objective.value, exc)
        return fallback

    reason = _rejection_reason(reply, policy)
    if reason is not None:
        logger.warning("Coach reply rejected (%s): %s", policy.objective.value, reason)
        return fallback.model_copy(update={"raw": reply})

    return CoachReplyResult(
        speak=True,
        text=fit_to_budget(reply, policy.word_budget),
        source=ReplySource.MODEL,
        raw=reply,
    )
