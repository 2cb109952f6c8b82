"""Middleware package for the application."""

from credverify.middleware.request_id import RequestIDMiddleware

__all__ = ["RequestIDMiddleware"]
