"""MindScreen services.

- assessment_service: Questionnaire scoring, submission and history
- guidance_service: Supportive guidance for scored assessments
- safety_service: Crisis keyword detection for free text

All services use hash_pii() for student identifiers in logs.
"""
