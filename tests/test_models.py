"""Tests for core data models."""

import json

import pytest

from orgsim.models import (
    ACTOR_CLASS,
    INTERNET_CLASS,
    AgentCapacity,
    AgentId,
    Belief,
    BlockerResolution,
    CognitiveArchitecture,
    CommunicationMedium,
    ImpactLevel,
    Knowledge,
    MurphiesConfig,
    MurphyIncompleteConfig,
    SimulationConfig,
    TimeStepType,
)


class TestAgentId:
    def test_actor_by_default(self):
        agent_id = AgentId(key=3)
        assert agent_id.class_key == ACTOR_CLASS
        assert agent_id.is_actor is True
        assert str(agent_id) == "1:3"

    def test_external_agent(self):
        assert AgentId(key=1, class_key=INTERNET_CLASS).is_actor is False

    def test_hashable_and_equal(self):
        ids = {AgentId(key=1), AgentId(key=1), AgentId(key=2)}
        assert len(ids) == 2


class TestCommunicationMedium:
    def test_members_of_combined_flags(self):
        preferred = CommunicationMedium.EMAIL | CommunicationMedium.PHONE
        assert preferred.members() == [CommunicationMedium.EMAIL, CommunicationMedium.PHONE]

    def test_none_has_no_members(self):
        assert CommunicationMedium.NONE.members() == []

    def test_all_human_excludes_system(self):
        assert CommunicationMedium.SYSTEM not in CommunicationMedium.all_human()


class TestAgentCapacity:
    def test_reset_and_decrement(self):
        capacity = AgentCapacity(initial=1.0)
        assert capacity.has_capacity is False
        capacity.reset()
        assert capacity.has_capacity is True
        capacity.decrement(0.4)
        assert capacity.actual == pytest.approx(0.6)

    def test_decrement_never_negative(self):
        capacity = AgentCapacity(initial=0.5, actual=0.5)
        capacity.decrement(2.0)
        assert capacity.actual == 0.0
        assert capacity.has_capacity is False


class TestCognitiveArchitecture:
    def test_defaults(self):
        cognitive = CognitiveArchitecture()
        assert cognitive.message_content.can_receive_knowledge is True
        assert cognitive.internal_characteristics.risk_aversion_threshold == 1.0
        assert cognitive.tasks_and_performance.tasks_limit.limit_simultaneous_tasks is True
        assert cognitive.interaction_characteristics.preferred_communication_mediums == CommunicationMedium.EMAIL

    def test_instances_do_not_share_state(self):
        a = CognitiveArchitecture()
        b = CognitiveArchitecture()
        a.message_content.can_receive_knowledge = False
        assert b.message_content.can_receive_knowledge is True


class TestMurphiesConfig:
    def test_defaults(self):
        config = MurphiesConfig()
        assert config.incomplete_knowledge.on is False
        assert config.incomplete_knowledge.limit_number_of_tries == -1
        assert config.incomplete_information.rate_of_agents_on == 0.05
        assert config.incomplete_information.rate_of_missing_information == 1.0
        assert config.multiple_blockers is False

    def test_on_off(self):
        config = MurphiesConfig()
        config.on()
        assert config.incomplete_belief.on is True
        assert config.unavailability.on is True
        config.off()
        assert config.incomplete_information.on is False

    def test_limit_number_of_tries_bounds(self):
        with pytest.raises(Exception):
            MurphyIncompleteConfig(limit_number_of_tries=-2)

    def test_rate_bounds(self):
        with pytest.raises(Exception):
            MurphyIncompleteConfig(rate_of_incorrect_guess=1.5)


class TestKnowledgeTopics:
    def test_length_bounds(self):
        with pytest.raises(Exception):
            Knowledge(id=1, length=0)

    def test_belief_weight_defaults_to_one(self):
        belief = Belief(id=1, length=3)
        assert belief.weight(2) == 1.0
        belief = Belief(id=1, length=3, weights=[0.0, 0.5, 1.0])
        assert belief.weight(1) == 0.5


class TestEnums:
    def test_impact_levels_are_ordered(self):
        assert ImpactLevel.NONE < ImpactLevel.GUESSED < ImpactLevel.BLOCKED

    def test_resolution_values(self):
        assert BlockerResolution("internal") == BlockerResolution.INTERNAL


class TestSimulationConfig:
    def test_defaults(self):
        config = SimulationConfig()
        assert config.seed == 0
        assert config.schedule.time_step_type == TimeStepType.DAILY
        assert config.schedule.working_days == "* * * * 1-5"
        assert config.models.intraday == 0.01

    def test_communication_costs(self):
        config = SimulationConfig()
        assert config.communication.time_spent(CommunicationMedium.SYSTEM, True) == 0
        assert config.communication.time_spent(CommunicationMedium.EMAIL, True) == 0.02
        assert config.communication.time_spent(CommunicationMedium.EMAIL, False) == 0.01

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "seed": 7,
            "murphies": {
                "incomplete_knowledge": {"on": True, "limit_number_of_tries": 3},
                "multiple_blockers": True,
            },
            "models": {"knowledge": {"on": True}},
            "schedule": {"start_date": "2021-03-01", "working_days": "* * * * 1-4"},
        }))
        config = SimulationConfig.from_json_file(str(path))
        assert config.seed == 7
        assert config.murphies.incomplete_knowledge.on is True
        assert config.murphies.incomplete_knowledge.limit_number_of_tries == 3
        assert config.murphies.multiple_blockers is True
        assert config.models.knowledge.on is True
        assert config.schedule.working_days == "* * * * 1-4"
