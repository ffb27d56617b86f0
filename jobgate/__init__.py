"""Onboarding gating and profile-wizard core for the job marketplace client."""

__version__ = "0.1.0"
