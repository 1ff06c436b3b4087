"""
API v1 package.

Contains versioned API routes for the customer onboarding API.
"""

from onboarding.api.v1.routes import router

__all__ = ["router"]
