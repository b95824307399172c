"""
Clinic Module Test Fixtures
===========================

Shared fixtures for all test modules.
"""

import pytest
from unittest.mock import AsyncMock

from clinic_modules.engine import ModuleActivationEngine
from clinic_modules.modules.registry import Module, ModuleCatalog, default_catalog
from clinic_modules.storage.memory import InMemoryTenantModuleStore

CORE = {"patients", "appointments", "clinical"}


# ============================================
# CATALOGS
# ============================================

@pytest.fixture
def catalog():
    """The built-in clinic catalog."""
    return default_catalog()


@pytest.fixture
def small_catalog():
    """Required core plus financial, stock and bi."""
    return ModuleCatalog([
        Module(id="patients", name="Patients", required=True),
        Module(id="appointments", name="Appointments", required=True),
        Module(id="clinical", name="Clinical", required=True),
        Module(id="financial", name="Financial"),
        Module(id="stock", name="Stock", dependencies=["financial"]),
        Module(id="bi", name="BI", dependencies=["financial", "clinical", "appointments"]),
    ])


# ============================================
# STORES & ENGINES
# ============================================

@pytest.fixture
def store():
    """In-memory store with a few pre-provisioned clinics."""
    return InMemoryTenantModuleStore({
        "clinic-core": CORE,
        "clinic-stock": CORE | {"financial", "stock"},
        "clinic-full": CORE | {"financial", "stock", "procedures", "tiss", "bi", "telemed", "mobile"},
    })


@pytest.fixture
def engine(catalog, store):
    return ModuleActivationEngine(catalog, store)


@pytest.fixture
def small_engine(small_catalog, store):
    return ModuleActivationEngine(small_catalog, store)


@pytest.fixture
def mock_db_pool():
    """Mock asyncpg connection pool."""
    pool = AsyncMock()
    pool.execute = AsyncMock()
    pool.fetchrow = AsyncMock(return_value=None)
    pool.fetchval = AsyncMock(return_value=None)
    pool.close = AsyncMock()
    return pool
