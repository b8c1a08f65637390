"""Talaty eKYC - onboarding, verification and business scoring backend."""
