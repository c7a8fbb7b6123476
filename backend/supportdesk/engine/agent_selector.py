"""Agent Selector - Pick an assignee for the assign action"""
import random
from typing import List, Optional

from ..domain.models import Agent, Ticket
from ..domain.enums import AgentRole, AssignmentCriteria, TicketPriority

SENIOR_ROLES = (AgentRole.SENIOR_AGENT, AgentRole.LEAD_AGENT)


class AgentSelector:
    """
    Choose the best agent for a ticket

    Admins are never assignment candidates. Selection reads the roster in
    the order given, so results are stable for every criteria except
    round_robin, which is an unweighted random pick with no rotation state.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def find_best_agent(
        self,
        criteria: str,
        agents: List[Agent],
        ticket: Ticket
    ) -> Optional[str]:
        """
        Select an agent ID

        Args:
            criteria: AssignmentCriteria value (unknown values pick the first candidate)
            agents: Agent roster
            ticket: Ticket being assigned

        Returns:
            Agent ID or None when no candidate exists
        """
        candidates = [agent for agent in agents if agent.role != AgentRole.ADMIN]
        if not candidates:
            return None

        if criteria == AssignmentCriteria.LEAST_LOADED_SENIOR_AGENT.value:
            return self._prefer_senior(candidates).id

        if criteria == AssignmentCriteria.ROUND_ROBIN.value:
            return self._rng.choice(candidates).id

        if criteria == AssignmentCriteria.PRIORITY_BASED.value:
            if ticket.priority == TicketPriority.HIGH:
                return self._prefer_senior(candidates).id
            return candidates[0].id

        return candidates[0].id

    @staticmethod
    def _prefer_senior(candidates: List[Agent]) -> Agent:
        for agent in candidates:
            if agent.role in SENIOR_ROLES:
                return agent
        return candidates[0]
