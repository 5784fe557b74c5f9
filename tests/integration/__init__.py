"""Integration tests for pyvesynccloud library.

These tests use real account credentials from a .env file and make actual API
calls. They are marked with @pytest.mark.integration and are skipped when no
credentials are configured.

To run integration tests:
    pytest tests/integration -v -m integration

Environment variables read from .env:
    VESYNC_USERNAME: Account email
    VESYNC_PASSWORD: Account password
    VESYNC_REGION: Region to start from (optional, defaults to US)
    VESYNC_COUNTRY_CODE: Account country code (optional)
"""
