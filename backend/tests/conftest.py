"""
Pytest Configuration and Fixtures

Shared fixtures for all tests. Nothing here talks to MongoDB or a real
mail / storage vendor.
"""

from datetime import datetime
from typing import List

import pytest

from supportdesk.config.settings import Settings
from supportdesk.domain.enums import AgentRole
from supportdesk.domain.models import Agent

from tests.fakes import NOW, FakeAuditRepository, FakeChannelRepository, FakeRuleRepository


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Isolated settings: no .env, no file logging, no vendor credentials"""
    return Settings(
        _env_file=None,
        log_to_file=False,
        storage_provider="local",
        storage_local_root=str(tmp_path / "uploads"),
        app_url="http://testserver",
        email_provider="sendgrid",
        sendgrid_api_key="",
        mailgun_api_key="",
        mailgun_domain="",
        smtp_host="",
        smtp_username="",
        smtp_password="",
        management_email="",
    )


@pytest.fixture
def agents() -> List[Agent]:
    return [
        Agent(id="admin-1", name="Ada Admin", role=AgentRole.ADMIN),
        Agent(id="agent-1", name="Alex Agent", role=AgentRole.AGENT),
        Agent(id="senior-1", name="Sam Senior", role=AgentRole.SENIOR_AGENT),
        Agent(id="lead-1", name="Lee Lead", role=AgentRole.LEAD_AGENT),
    ]


@pytest.fixture
def channel_repo() -> FakeChannelRepository:
    return FakeChannelRepository()


@pytest.fixture
def rule_repo() -> FakeRuleRepository:
    return FakeRuleRepository()


@pytest.fixture
def audit_repo() -> FakeAuditRepository:
    return FakeAuditRepository()
