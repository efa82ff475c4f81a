"""
Untappd Mirror - Test Suite

Unit and integration tests for the check-in mirror.

Test Organization:
- test_models.py: Pydantic model validation and metadata derivation
- test_sources.py: Feed, export file and static sources
- test_storage.py: Object storage backends and the check-in store
- test_photos.py: Photo download and WebP transcoding
- test_ingest.py: Sync pipeline integration
- test_config.py: TOML and environment configuration
- test_cli.py: Command-line interface
- test_utils.py: Time parsing, cancellation and logging helpers

Fixtures are in tests/fixtures/:
- factories.py: CheckinFactory and feed payload builders

Run tests:
    $ pytest tests/ -v
"""
