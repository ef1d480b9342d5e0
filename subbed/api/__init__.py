"""REST API module for the subscription feed service.

The application factory lives in ``subbed.api.app``.
"""
