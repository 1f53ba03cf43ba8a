"""
Tests for core infrastructure: exceptions, service results, decorators,
helpers and health endpoints.
"""
