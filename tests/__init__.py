"""
MedReview Test Suite
====================

Test organization:
- tests/unit/                          - Auth and shared library tests
- tests/services/compliance_review/    - Pipeline, service and API tests

All tests run against in-memory repositories, an in-memory blob store
and a scripted LLM provider; no database or API key is needed.

Run tests:
    pytest                                      # All tests
    pytest tests/services/compliance_review     # Pipeline tests only
    pytest --cov=services --cov=shared          # With coverage
"""
