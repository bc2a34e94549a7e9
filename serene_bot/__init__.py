"""Serene Wellbeing Bot — guided booking, checkout and onboarding flows."""

__version__ = "1.0.0"
