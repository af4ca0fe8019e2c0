"""
Pytest fixtures for the HttpAgent test suite.

Fixtures are organized by concern:
- http_mocking: MockTransport clients, echo handler, and failing streams
"""
