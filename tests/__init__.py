"""
Launchpad Test Suite
====================

Test organization mirrors the source code structure:
    tests/
    ├── test_core/           → launchpad.core (config, environment, models, state)
    ├── test_infrastructure/ → launchpad.infrastructure (runner, health, ledger)
    ├── test_stages/         → launchpad.stages (one file per stage)
    ├── test_integrations/   → launchpad.integrations (notifiers)
    ├── test_manifests/      → launchpad.manifests (Kubernetes, Compose)
    ├── test_orchestration/  → launchpad.orchestration (engine, state manager)
    ├── test_integration/    → End-to-end pipeline runs
    └── conftest.py          → Shared pytest fixtures

Running Tests:
    pytest                          # Run all tests
    pytest tests/test_stages/       # Run only stage tests
"""
