"""MindScreen: assessment scoring and safety triage for student wellbeing."""

__version__ = "0.1.0"
