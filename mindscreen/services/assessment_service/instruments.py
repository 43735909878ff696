"""Instrument configuration: item sets, value ranges and severity bands.

Each instrument is an immutable InstrumentConfig built once by
build_default_registry() and passed explicitly to the scorers.

Sources:
- PHQ-9: Kroenke, Spitzer & Williams (2001)
- GAD-7: Spitzer et al. (2006)
- PSS-10: Cohen, Kamarck & Mermelstein (1983)
- WHO-5: WHO Collaborating Centre in Mental Health (1998)
- C-SSRS screener: Posner et al. (2011)
"""
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterator, List, Mapping, Optional, Tuple, Union

from mindscreen.shared.models import Instrument, SeverityLevel, UnknownInstrument

Minimal = SeverityLevel.MINIMAL
Mild = SeverityLevel.MILD
Moderate = SeverityLevel.MODERATE
ModeratelySevere = SeverityLevel.MODERATELY_SEVERE
Severe = SeverityLevel.SEVERE


class ScoringRule(Enum):
    """How a response set is turned into a score."""
    LIKERT_SUM = "likert_sum"       # Sum of item values, reverse items inverted
    CSSRS_SCREEN = "cssrs_screen"   # Yes/no screener, priority rule


@dataclass(frozen=True)
class InstrumentConfig:
    """Static scoring configuration and catalog entry for one instrument.

    band_upper_bounds holds the inclusive upper score of every band except
    the last, which is unbounded. severity_labels lists one label per band
    in ascending score order; an inverted scale (WHO-5) simply lists its
    labels from worst to best.
    """
    instrument: Instrument
    rule: ScoringRule
    item_ids: Tuple[str, ...]
    severity_labels: Tuple[SeverityLevel, ...]
    band_upper_bounds: Tuple[int, ...] = ()
    min_value: int = 0
    max_value: int = 0
    reverse_items: FrozenSet[str] = field(default_factory=frozenset)
    # Catalog metadata
    title: str = ""
    description: str = ""
    duration: str = ""
    category: str = ""
    warning: Optional[str] = None

    def __post_init__(self):
        if self.rule is ScoringRule.LIKERT_SUM:
            if len(self.band_upper_bounds) != len(self.severity_labels) - 1:
                raise ValueError(
                    f"{self.instrument.value}: need one upper bound per band except the last"
                )
            if list(self.band_upper_bounds) != sorted(set(self.band_upper_bounds)):
                raise ValueError(f"{self.instrument.value}: band bounds must strictly increase")
            if self.min_value > self.max_value:
                raise ValueError(f"{self.instrument.value}: empty item range")
        unknown_reverse = self.reverse_items - set(self.item_ids)
        if unknown_reverse:
            raise ValueError(
                f"{self.instrument.value}: reverse items not in item set: {sorted(unknown_reverse)}"
            )

    @property
    def is_inverted(self) -> bool:
        """True when a higher score means better health (WHO-5)."""
        return self.severity_labels[0].rank > self.severity_labels[-1].rank

    @property
    def min_score(self) -> int:
        return self.min_value * len(self.item_ids)

    @property
    def max_score(self) -> int:
        return self.max_value * len(self.item_ids)

    def to_catalog_entry(self) -> Dict[str, Any]:
        """Entry for the available-assessments listing."""
        entry: Dict[str, Any] = {
            "id": self.instrument.value,
            "name": self.title,
            "description": self.description,
            "duration": self.duration,
            "questions": len(self.item_ids),
            "category": self.category,
        }
        if self.warning:
            entry["warning"] = self.warning
        return entry


def _items(count: int) -> Tuple[str, ...]:
    return tuple(f"q{n}" for n in range(1, count + 1))


class InstrumentRegistry:
    """Read-only lookup of InstrumentConfig by Instrument."""

    def __init__(self, configs: Mapping[Instrument, InstrumentConfig]):
        for instrument, config in configs.items():
            if config.instrument is not instrument:
                raise ValueError(f"Config for {instrument.value} registered under wrong key")
        self._configs = MappingProxyType(dict(configs))

    def get(self, instrument: Union[str, Instrument]) -> InstrumentConfig:
        """Resolve an identifier or alias to its config.

        Raises:
            UnknownInstrument: If the identifier is outside the closed set
        """
        config = self._configs.get(Instrument.from_identifier(instrument))
        if config is None:
            raise UnknownInstrument(instrument)
        return config

    def __contains__(self, instrument: object) -> bool:
        return instrument in self._configs

    def __iter__(self) -> Iterator[InstrumentConfig]:
        return iter(self._configs.values())

    def __len__(self) -> int:
        return len(self._configs)

    def catalog(self) -> List[Dict[str, Any]]:
        """Static assessment catalog in registry order."""
        return [config.to_catalog_entry() for config in self]


def build_default_registry() -> InstrumentRegistry:
    """Build the registry of all supported instruments."""
    configs = [
        InstrumentConfig(
            instrument=Instrument.PHQ9,
            rule=ScoringRule.LIKERT_SUM,
            item_ids=_items(9),
            min_value=0,
            max_value=3,
            band_upper_bounds=(4, 9, 14, 19),
            severity_labels=(Minimal, Mild, Moderate, ModeratelySevere, Severe),
            title="PHQ-9 - Depression Screening",
            description="Patient Health Questionnaire for depression assessment",
            duration="5 minutes",
            category="Mental Health",
        ),
        InstrumentConfig(
            instrument=Instrument.GAD7,
            rule=ScoringRule.LIKERT_SUM,
            item_ids=_items(7),
            min_value=0,
            max_value=3,
            band_upper_bounds=(4, 9, 14),
            severity_labels=(Minimal, Mild, Moderate, Severe),
            title="GAD-7 - Anxiety Assessment",
            description="Generalized Anxiety Disorder screening tool",
            duration="3 minutes",
            category="Mental Health",
        ),
        InstrumentConfig(
            instrument=Instrument.GHQ12,
            rule=ScoringRule.LIKERT_SUM,
            item_ids=_items(12),
            min_value=0,
            max_value=3,
            band_upper_bounds=(11, 15, 20),
            severity_labels=(Minimal, Mild, Moderate, Severe),
            title="GHQ-12 - General Mental Health",
            description="General Health Questionnaire for overall mental wellbeing",
            duration="5 minutes",
            category="Mental Health",
        ),
        InstrumentConfig(
            instrument=Instrument.PSS10,
            rule=ScoringRule.LIKERT_SUM,
            item_ids=_items(10),
            min_value=0,
            max_value=4,
            # Positively worded items: 0=4, 1=3, 2=2, 3=1, 4=0
            reverse_items=frozenset({"q4", "q5", "q7", "q8"}),
            band_upper_bounds=(13, 26),
            severity_labels=(Minimal, Moderate, Severe),
            title="PSS-10 - Stress Assessment",
            description="Perceived Stress Scale to measure stress levels",
            duration="5 minutes",
            category="Stress",
        ),
        InstrumentConfig(
            instrument=Instrument.WHO5,
            rule=ScoringRule.LIKERT_SUM,
            item_ids=_items(5),
            min_value=0,
            max_value=5,
            # Raw 0-25; low raw score means poor wellbeing
            band_upper_bounds=(7, 14, 19),
            severity_labels=(Severe, Moderate, Mild, Minimal),
            title="WHO-5 - Wellbeing Index",
            description="WHO Well-Being Index for positive mental health",
            duration="2 minutes",
            category="Wellbeing",
        ),
        InstrumentConfig(
            instrument=Instrument.IAT,
            rule=ScoringRule.LIKERT_SUM,
            item_ids=_items(20),
            min_value=1,
            max_value=5,
            band_upper_bounds=(49, 79),
            severity_labels=(Minimal, Moderate, Severe),
            title="IAT - Internet Addiction Test",
            description="Assessment for problematic internet use",
            duration="8 minutes",
            category="Behavioral",
        ),
        InstrumentConfig(
            instrument=Instrument.PSQI,
            rule=ScoringRule.LIKERT_SUM,
            # Seven component scores; component derivation is done client-side
            item_ids=_items(7),
            min_value=0,
            max_value=3,
            band_upper_bounds=(5, 10, 15),
            severity_labels=(Minimal, Mild, Moderate, Severe),
            title="PSQI - Sleep Quality Index",
            description=(
                "Pittsburgh Sleep Quality Index for sleep assessment. Submit the 7 "
                "component scores (q1-q7, 0-3 each), not the 19 raw questionnaire items"
            ),
            duration="10 minutes",
            category="Sleep",
        ),
        InstrumentConfig(
            instrument=Instrument.BHI10,
            rule=ScoringRule.LIKERT_SUM,
            item_ids=_items(10),
            min_value=0,
            max_value=4,
            band_upper_bounds=(10, 20, 30),
            severity_labels=(Minimal, Mild, Moderate, Severe),
            title="BHI-10 - Brief Health Index",
            description="Comprehensive health and wellness assessment",
            duration="5 minutes",
            category="Health",
        ),
        InstrumentConfig(
            instrument=Instrument.DERS18,
            rule=ScoringRule.LIKERT_SUM,
            item_ids=_items(18),
            min_value=1,
            max_value=5,
            band_upper_bounds=(35, 54, 72),
            severity_labels=(Minimal, Mild, Moderate, Severe),
            title="DERS-18 - Emotion Regulation",
            description="Difficulties in Emotion Regulation Scale",
            duration="8 minutes",
            category="Emotional Health",
        ),
        InstrumentConfig(
            instrument=Instrument.CSSRS,
            rule=ScoringRule.CSSRS_SCREEN,
            # q1-q2 ideation, q3-q4 intent, q5 plan, q6 behavior
            item_ids=_items(6),
            severity_labels=(Minimal, Mild, Moderate, Severe),
            title="CSSRS - Suicide Risk Screening",
            description="Columbia-Suicide Severity Rating Scale (screener)",
            duration="3 minutes",
            category="Crisis Assessment",
            warning=(
                "This is a screening tool. If you are in crisis, please contact "
                "emergency services or a crisis hotline immediately."
            ),
        ),
    ]
    return InstrumentRegistry({config.instrument: config for config in configs})


DEFAULT_REGISTRY = build_default_registry()
