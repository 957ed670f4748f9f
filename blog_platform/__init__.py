"""Blog Platform - Backend.

A small HTTP API for a blogging application:
- Users register and log in (JWT session in an httpOnly cookie or Bearer header).
- Posts are owned by a user and only visible/mutable through that user's session.
- Posts may carry an uploaded image and link to a category.

See README for setup and usage.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
