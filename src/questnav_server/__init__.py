"""questnav_server — FastAPI REST API for the questnav SDK.

Exposes compiled questionnaires and in-memory interview sessions over HTTP:
questionnaire listing and graph export, session management, and
step-by-step answering with back navigation.
"""
