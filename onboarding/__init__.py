"""Customer onboarding service: registration saga and email verification tokens."""
