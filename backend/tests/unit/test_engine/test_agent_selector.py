import random

from supportdesk.domain.enums import AgentRole, TicketPriority
from supportdesk.domain.models import Agent
from supportdesk.engine.agent_selector import AgentSelector

from tests.fakes import make_ticket


def test_least_loaded_senior_prefers_first_senior_or_lead(agents):
    selector = AgentSelector()
    assert selector.find_best_agent("least_loaded_senior_agent", agents, make_ticket()) == "senior-1"


def test_senior_criterion_falls_back_to_first_candidate():
    roster = [Agent(id="agent-1"), Agent(id="agent-2")]
    assert AgentSelector().find_best_agent("least_loaded_senior_agent", roster, make_ticket()) == "agent-1"


def test_admins_are_never_assigned():
    roster = [Agent(id="admin-1", role=AgentRole.ADMIN)]
    assert AgentSelector().find_best_agent("least_loaded_senior_agent", roster, make_ticket()) is None
    assert AgentSelector().find_best_agent("round_robin", [], make_ticket()) is None


def test_priority_based_uses_seniority_only_for_high_priority(agents):
    selector = AgentSelector()

    assert selector.find_best_agent("priority_based", agents, make_ticket(priority=TicketPriority.HIGH)) == "senior-1"
    assert selector.find_best_agent("priority_based", agents, make_ticket(priority=TicketPriority.LOW)) == "agent-1"


def test_round_robin_picks_a_non_admin_candidate(agents):
    selector = AgentSelector(random.Random(7))
    picks = {selector.find_best_agent("round_robin", agents, make_ticket()) for _ in range(50)}

    assert picks <= {"agent-1", "senior-1", "lead-1"}
    assert "admin-1" not in picks


def test_unknown_criteria_picks_first_candidate(agents):
    assert AgentSelector().find_best_agent("by_mood", agents, make_ticket()) == "agent-1"
