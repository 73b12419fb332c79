"""
Pytest configuration and fixtures for labor-import-pipeline tests

This module provides shared fixtures for unit, integration, and E2E tests.
"""
import os
from typing import Generator
from uuid import uuid4

import pytest
from testcontainers.postgres import PostgresContainer

from labor_import.core.config import ImportSettings, SheetLayout
from labor_import.core.models import Project
from labor_import.warehouse.connection import DatabaseConnectionPool
from labor_import.warehouse.schema_mgmt import SchemaManager
from labor_import.warehouse.store import PostgresLaborStore
from memory_store import InMemoryLaborStore


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that test the full pipeline"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )


# =======================
# DOMAIN FIXTURES
# =======================

@pytest.fixture
def settings() -> ImportSettings:
    """Default import settings"""
    return ImportSettings(layout=SheetLayout())


@pytest.fixture
def project() -> Project:
    return Project(project_id=uuid4(), job_number="5772", name="LS DOW Expansion")


@pytest.fixture
def memory_store(project) -> InMemoryLaborStore:
    """In-memory store seeded with project 5772"""
    store = InMemoryLaborStore()
    store.add_project(project)
    return store


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

PG_USER = "test_labor_import"
PG_PASSWORD = "test_password"
PG_DATABASE = "test_labor_costs"


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL container for integration tests

    Yields:
        PostgresContainer instance with the warehouse schema created
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username=PG_USER,
        password=PG_PASSWORD,
        dbname=PG_DATABASE,
    ) as postgres:
        # Wait for container to be ready
        postgres.get_connection_url()

        pool = _container_pool(postgres)
        try:
            SchemaManager(pool).create_schema()
        finally:
            pool.close()

        yield postgres


def _container_pool(postgres: PostgresContainer) -> DatabaseConnectionPool:
    pool = DatabaseConnectionPool(
        host=postgres.get_container_host_ip(),
        port=int(postgres.get_exposed_port(5432)),
        database=PG_DATABASE,
        user=PG_USER,
        password=PG_PASSWORD,
    )
    pool.open()
    return pool


@pytest.fixture(scope="function")
def db_pool(postgres_container) -> Generator[DatabaseConnectionPool, None, None]:
    """
    Provide an open connection pool for a single test

    Yields:
        DatabaseConnectionPool
    """
    pool = _container_pool(postgres_container)
    try:
        yield pool
    finally:
        pool.close()


@pytest.fixture(scope="function")
def clean_db(db_pool) -> Generator[DatabaseConnectionPool, None, None]:
    """
    Provide a clean database by truncating all tables before each test

    Yields:
        DatabaseConnectionPool over an empty schema
    """
    SchemaManager(db_pool).truncate_all()
    yield db_pool


@pytest.fixture(scope="function")
def pg_store(clean_db) -> PostgresLaborStore:
    """PostgresLaborStore over a clean database"""
    return PostgresLaborStore(clean_db)


# =======================
# CONFIGURATION FIXTURES
# =======================

@pytest.fixture(scope="session", autouse=True)
def test_env_vars():
    """
    Set test environment variables

    This fixture loads test.env and sets environment variables
    """
    from dotenv import load_dotenv

    env_path = os.path.join(
        os.path.dirname(os.path.dirname(__file__)),
        "config",
        "test.env"
    )

    if os.path.exists(env_path):
        load_dotenv(env_path, override=True)
