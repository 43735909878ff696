"""Assessment scoring engine.

Pure functions mapping a response set to a ScoreResult. No I/O, no
logging, no shared mutable state: safe to call from any thread.

Scoring fails closed. A missing item, an unexpected item, an unparsable
answer or an out-of-range value raises MalformedResponse instead of being
skipped, because a partial sum understates risk.
"""
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Union

from mindscreen.shared.models import (
    Instrument,
    MalformedResponse,
    ScoreResult,
    SeverityLevel,
)
from .instruments import (
    DEFAULT_REGISTRY,
    InstrumentConfig,
    InstrumentRegistry,
    ScoringRule,
)

ResponseSet = Mapping[str, Any]

YES_TOKEN = "yes"
NO_TOKEN = "no"


def _check_item_set(config: InstrumentConfig, responses: ResponseSet) -> None:
    """Require exactly the instrument's item ids."""
    name = config.instrument.value
    if not isinstance(responses, Mapping):
        raise MalformedResponse(name, "responses must map question ids to answers")

    missing = [item_id for item_id in config.item_ids if item_id not in responses]
    if missing:
        raise MalformedResponse(
            name, f"missing required items: {', '.join(missing)}", item_id=missing[0]
        )

    unexpected = sorted(str(key) for key in responses if key not in config.item_ids)
    if unexpected:
        raise MalformedResponse(
            name, f"unexpected items: {', '.join(unexpected)}", item_id=unexpected[0]
        )


def parse_likert_value(config: InstrumentConfig, item_id: str, raw: Any) -> int:
    """Read one Likert answer as an int within the instrument's range.

    Accepts ints and integer strings (surrounding whitespace allowed).
    Booleans, floats and anything else are rejected.
    """
    name = config.instrument.value
    if isinstance(raw, bool):
        raise MalformedResponse(name, f"expected an integer, got {raw!r}", item_id=item_id)

    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str):
        try:
            value = int(raw.strip())
        except ValueError:
            raise MalformedResponse(
                name, f"expected an integer, got {raw!r}", item_id=item_id
            ) from None
    else:
        raise MalformedResponse(name, f"expected an integer, got {raw!r}", item_id=item_id)

    if not config.min_value <= value <= config.max_value:
        raise MalformedResponse(
            name,
            f"value {value} outside {config.min_value}-{config.max_value}",
            item_id=item_id,
        )
    return value


def parse_yes_no(config: InstrumentConfig, item_id: str, raw: Any) -> bool:
    """Read one screener answer: "yes"/"no" (any case) or a bool."""
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        token = raw.strip().lower()
        if token == YES_TOKEN:
            return True
        if token == NO_TOKEN:
            return False
    raise MalformedResponse(
        config.instrument.value, f"expected 'yes' or 'no', got {raw!r}", item_id=item_id
    )


def classify(config: InstrumentConfig, score: int) -> SeverityLevel:
    """Map a score to its severity band using inclusive upper bounds."""
    for upper_bound, label in zip(config.band_upper_bounds, config.severity_labels):
        if score <= upper_bound:
            return label
    return config.severity_labels[-1]


def score_likert(config: InstrumentConfig, responses: ResponseSet) -> ScoreResult:
    """Sum item values, inverting reverse-scored items, then band.

    A reverse item contributes (min + max - value), i.e. 4 - value on a
    0-4 scale.
    """
    _check_item_set(config, responses)

    score = 0
    for item_id in config.item_ids:
        value = parse_likert_value(config, item_id, responses[item_id])
        if item_id in config.reverse_items:
            value = config.min_value + config.max_value - value
        score += value

    return ScoreResult(score=score, severity=classify(config, score))


def score_cssrs(config: InstrumentConfig, responses: ResponseSet) -> ScoreResult:
    """C-SSRS screener: fixed clinical escalation priority.

    behavior, or intent together with plan  -> 4 (highest band)
    intent or plan                          -> 3
    ideation                                -> 2
    nothing endorsed                        -> 1
    """
    _check_item_set(config, responses)
    answers: Dict[str, bool] = {
        item_id: parse_yes_no(config, item_id, responses[item_id])
        for item_id in config.item_ids
    }

    ideation = answers["q1"] or answers["q2"]
    intent = answers["q3"] or answers["q4"]
    plan = answers["q5"]
    behavior = answers["q6"]

    if behavior or (intent and plan):
        score = 4
    elif intent or plan:
        score = 3
    elif ideation:
        score = 2
    else:
        score = 1

    return ScoreResult(score=score, severity=config.severity_labels[score - 1])


Scorer = Callable[[InstrumentConfig, ResponseSet], ScoreResult]

# Every ScoringRule must have an entry; enforced by tests.
SCORERS: Mapping[ScoringRule, Scorer] = MappingProxyType({
    ScoringRule.LIKERT_SUM: score_likert,
    ScoringRule.CSSRS_SCREEN: score_cssrs,
})


def calculate_score(
    instrument: Union[str, Instrument],
    responses: ResponseSet,
    registry: Optional[InstrumentRegistry] = None,
) -> ScoreResult:
    """Score a response set for the given instrument identifier.

    Args:
        instrument: Wire identifier ("PHQ-9", "C-SSRS", ...) or Instrument
        responses: Question id -> answer token
        registry: Instrument configuration (defaults to the built-in set)

    Returns:
        ScoreResult with score and severity

    Raises:
        UnknownInstrument: If the identifier is not a supported instrument
        MalformedResponse: If the response set is incomplete or invalid
    """
    config = (DEFAULT_REGISTRY if registry is None else registry).get(instrument)
    return SCORERS[config.rule](config, responses)
