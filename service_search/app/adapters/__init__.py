"""
Adapters package for the Search Service.

Contains HTTP client wrappers for external dependencies. Adapters
encapsulate base URLs, request shapes, credentials, and the mapping of
transport failures to shared errors.
"""

from .kakao_client import KakaoLocalClient

__all__ = ["KakaoLocalClient"]
