"""
Test Suite

Contains unit tests for the backend system.

Structure:
- tests/unit/: Tests for individual components (resolver, adapters, aggregator, poller, API)

Uses pytest with pytest-asyncio for testing async functionality. Exchange
responses are recorded JSON payloads; no test touches the network.
"""
