"""
botsmith Test Suite
===================

Test organization mirrors the source code structure:
    tests/
    ├── test_core/          → Tests for botsmith.core (config, models, state, errors)
    ├── test_integrations/  → Tests for botsmith.integrations (LLM, platform, storage)
    ├── test_infrastructure/→ Tests for botsmith.infrastructure (artifact repository)
    ├── test_orchestration/ → Tests for botsmith.orchestration (stages, engine)
    ├── test_integration/   → End-to-end tests through the facade
    └── conftest.py         → Shared pytest fixtures

Running Tests:
    pytest                          # Run all tests
    pytest tests/test_core/         # Run only core tests
    pytest --cov=botsmith           # Run with coverage report
"""
