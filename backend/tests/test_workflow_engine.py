"""Tests for workflow state, the node processor and the workflow builder."""

from datetime import datetime, timedelta

import pytest

from leadwatch.core.exceptions import ResourceNotFoundError, ValidationError
from leadwatch.models import ProspectCandidate
from leadwatch.models.campaign import (
    Campaign,
    CampaignProspect,
    NodeType,
    WorkflowEdge,
    WorkflowNode,
    WorkflowProspectState,
    WorkflowStatus,
)
from leadwatch.models.prospect import ProspectAction, ProspectSource
from leadwatch.services import workflow_builder, workflow_processor
from leadwatch.services.campaigns import add_prospect, create_campaign, create_email_block
from leadwatch.services.workflow_state import (
    get_next_nodes,
    get_prospects_ready_to_execute,
    initialize_prospect_workflow,
    move_prospect_to_next_node,
    record_prospect_error,
)

pytestmark = pytest.mark.unit

NOW = datetime(2025, 3, 5, 10, 30)


def make_prospect(db, team, name, email=None) -> ProspectCandidate:
    slug = name.lower().replace(" ", "-")
    prospect = ProspectCandidate(
        team_id=team.id,
        source=ProspectSource.CHROME_EXTENSION,
        source_ref="Chrome extension",
        action=ProspectAction.IMPORTED,
        profile_url=f"https://www.linkedin.com/in/{slug}",
        name=name,
        title="CEO",
        company="Initech",
        email=email,
    )
    db.add(prospect)
    db.commit()
    return prospect


def add_node(db, campaign, node_type, **config) -> WorkflowNode:
    node = WorkflowNode(campaign_id=campaign.id, type=node_type, config=config)
    db.add(node)
    db.commit()
    return node


def connect(db, campaign, source, target, handle=None) -> WorkflowEdge:
    edge = WorkflowEdge(
        campaign_id=campaign.id,
        source_node_id=source.id,
        target_node_id=target.id,
        source_handle=handle,
    )
    db.add(edge)
    db.commit()
    return edge


@pytest.fixture
def campaign(db_session, team, user) -> Campaign:
    return create_campaign(db_session, team.id, user.id, "Q2 outreach")


@pytest.fixture
def jane(db_session, team):
    return make_prospect(db_session, team, "Jane Doe", email="jane@initech.com")


@pytest.fixture
def enrollment(db_session, team, user, campaign, jane) -> CampaignProspect:
    return add_prospect(db_session, team.id, campaign.id, jane.id, user.id, now=NOW)


@pytest.fixture
def start_node(db_session, campaign) -> WorkflowNode:
    return add_node(db_session, campaign, NodeType.START)


class TestWorkflowState:

    def test_initialize_places_prospect_on_start_node(self, db_session, enrollment, start_node):
        state = initialize_prospect_workflow(db_session, enrollment.id, start_node.id, NOW)

        assert state.current_node_id == start_node.id
        assert state.status == WorkflowStatus.READY
        assert state.scheduled_for == NOW

    def test_initialize_is_idempotent(self, db_session, enrollment, start_node):
        first = initialize_prospect_workflow(db_session, enrollment.id, start_node.id, NOW)
        second = initialize_prospect_workflow(db_session, enrollment.id, start_node.id, NOW + timedelta(days=1))

        assert second.id == first.id
        assert second.scheduled_for == NOW
        assert db_session.query(WorkflowProspectState).count() == 1

    def test_move_to_timing_node_waits(self, db_session, campaign, enrollment, start_node):
        delay = add_node(db_session, campaign, NodeType.DELAY, amount=2, unit="hours")
        state = initialize_prospect_workflow(db_session, enrollment.id, start_node.id, NOW)

        state = move_prospect_to_next_node(db_session, state.id, delay.id, NOW)

        assert state.current_node_id == delay.id
        assert state.status == WorkflowStatus.WAITING
        assert state.scheduled_for == NOW + timedelta(hours=2)
        assert state.last_executed_at == NOW

    def test_move_to_action_node_is_ready_now(self, db_session, campaign, enrollment, start_node):
        email = add_node(db_session, campaign, NodeType.EMAIL, subject="Hi")
        state = initialize_prospect_workflow(db_session, enrollment.id, start_node.id, NOW)

        state = move_prospect_to_next_node(db_session, state.id, email.id, NOW + timedelta(minutes=5))

        assert state.status == WorkflowStatus.READY
        assert state.scheduled_for == NOW + timedelta(minutes=5)

    def test_move_to_nothing_completes(self, db_session, enrollment, start_node):
        state = initialize_prospect_workflow(db_session, enrollment.id, start_node.id, NOW)

        state = move_prospect_to_next_node(db_session, state.id, None, NOW)

        assert state.status == WorkflowStatus.COMPLETED
        assert state.completed_at == NOW
        assert state.current_node_id is None

    def test_move_to_missing_node(self, db_session, enrollment, start_node):
        state = initialize_prospect_workflow(db_session, enrollment.id, start_node.id, NOW)

        with pytest.raises(ResourceNotFoundError) as exc_info:
            move_prospect_to_next_node(db_session, state.id, 999, NOW)

        assert exc_info.value.error_code == "WORKFLOW_NODE_NOT_FOUND"

    def test_next_nodes_follow_handles(self, db_session, campaign, start_node):
        condition = add_node(db_session, campaign, NodeType.CONDITION, field="email")
        yes = add_node(db_session, campaign, NodeType.EMAIL)
        no = add_node(db_session, campaign, NodeType.TASK)
        connect(db_session, campaign, start_node, condition)
        connect(db_session, campaign, condition, yes, "yes")
        connect(db_session, campaign, condition, no, "no")

        assert get_next_nodes(db_session, start_node.id) == [condition.id]
        assert get_next_nodes(db_session, condition.id, "yes") == [yes.id]
        assert get_next_nodes(db_session, condition.id, "no") == [no.id]
        assert get_next_nodes(db_session, condition.id) == []
        assert get_next_nodes(db_session, yes.id) == []

    def test_ready_query_skips_future_and_completed(self, db_session, team, user, campaign, start_node):
        states = {}
        for label, status, scheduled_for in [
            ("due", WorkflowStatus.READY, NOW - timedelta(minutes=1)),
            ("waited", WorkflowStatus.WAITING, NOW),
            ("unscheduled", WorkflowStatus.WAITING, None),
            ("future", WorkflowStatus.WAITING, NOW + timedelta(hours=1)),
            ("done", WorkflowStatus.COMPLETED, NOW - timedelta(hours=1)),
            ("running", WorkflowStatus.EXECUTING, NOW - timedelta(hours=1)),
        ]:
            prospect = make_prospect(db_session, team, f"Prospect {label}")
            cp = add_prospect(db_session, team.id, campaign.id, prospect.id, user.id, now=NOW)
            state = WorkflowProspectState(
                campaign_prospect_id=cp.id,
                current_node_id=start_node.id,
                status=status,
                scheduled_for=scheduled_for,
            )
            db_session.add(state)
            db_session.commit()
            states[label] = state.id

        ready = {state.id for state, _, _ in get_prospects_ready_to_execute(db_session, NOW)}

        assert ready == {states["due"], states["waited"], states["unscheduled"]}

    def test_record_error_keeps_prospect_ready(self, db_session, enrollment, start_node):
        state = initialize_prospect_workflow(db_session, enrollment.id, start_node.id, NOW)

        record_prospect_error(db_session, state.id, "SMTP unavailable")

        db_session.refresh(state)
        assert state.status == WorkflowStatus.READY
        assert state.error == "SMTP unavailable"
        assert state.current_node_id == start_node.id


class TestWorkflowProcessor:

    def test_walks_through_delay_to_completion(self, db_session, campaign, enrollment, start_node):
        delay = add_node(db_session, campaign, NodeType.DELAY, amount=1, unit="hours")
        email = add_node(db_session, campaign, NodeType.EMAIL, subject="Hello")
        connect(db_session, campaign, start_node, delay)
        connect(db_session, campaign, delay, email)
        state = initialize_prospect_workflow(db_session, enrollment.id, start_node.id, NOW)

        assert workflow_processor.process_ready_prospects(db_session, NOW) == 1
        db_session.refresh(state)
        assert state.current_node_id == delay.id
        assert state.status == WorkflowStatus.WAITING

        assert workflow_processor.process_ready_prospects(db_session, NOW + timedelta(minutes=30)) == 0

        later = NOW + timedelta(hours=1)
        assert workflow_processor.process_ready_prospects(db_session, later) == 1
        db_session.refresh(state)
        assert state.current_node_id == email.id
        assert state.status == WorkflowStatus.READY

        assert workflow_processor.process_ready_prospects(db_session, later) == 1
        db_session.refresh(state)
        assert state.status == WorkflowStatus.COMPLETED
        assert state.completed_at == later

    def test_condition_branches_on_prospect_field(self, db_session, team, user, campaign, jane, start_node):
        condition = add_node(db_session, campaign, NodeType.CONDITION, field="email")
        send = add_node(db_session, campaign, NodeType.EMAIL)
        call = add_node(db_session, campaign, NodeType.CALL)
        connect(db_session, campaign, condition, send, "yes")
        connect(db_session, campaign, condition, call, "no")

        no_email = make_prospect(db_session, team, "John Roe")
        states = {}
        for prospect in (jane, no_email):
            cp = add_prospect(db_session, team.id, campaign.id, prospect.id, user.id, now=NOW)
            states[prospect.id] = initialize_prospect_workflow(db_session, cp.id, condition.id, NOW)

        assert workflow_processor.process_ready_prospects(db_session, NOW) == 2

        for state in states.values():
            db_session.refresh(state)
        assert states[jane.id].current_node_id == send.id
        assert states[no_email.id].current_node_id == call.id

    def test_failure_keeps_prospect_on_node(self, db_session, enrollment, start_node, monkeypatch):
        def explode(node, campaign_prospect):
            raise RuntimeError("node handler crashed")

        monkeypatch.setattr(workflow_processor, "execute_node", explode)
        state = initialize_prospect_workflow(db_session, enrollment.id, start_node.id, NOW)

        assert workflow_processor.process_ready_prospects(db_session, NOW) == 0

        db_session.refresh(state)
        assert state.status == WorkflowStatus.READY
        assert state.error == "node handler crashed"
        assert state.current_node_id == start_node.id

    def test_action_nodes_succeed_without_handle(self, db_session, campaign, enrollment):
        for node_type in (NodeType.EMAIL, NodeType.VISIT_LINKEDIN, NodeType.TRANSFER):
            result = workflow_processor.execute_node(add_node(db_session, campaign, node_type), enrollment)

            assert result.success is True
            assert result.next_handle is None

    def test_condition_defaults_to_email_field(self, db_session, campaign, enrollment):
        condition = add_node(db_session, campaign, NodeType.CONDITION)

        assert workflow_processor.execute_node(condition, enrollment).next_handle == "yes"


class TestWorkflowBuilder:

    def test_migrate_blocks_chains_nodes(self, db_session, team, campaign):
        create_email_block(db_session, team.id, campaign.id, {"subject": "One", "body": "First"})
        create_email_block(db_session, team.id, campaign.id, {"subject": "Two", "body": "Second"})

        result = workflow_builder.migrate_blocks_to_workflow(db_session, team.id, campaign.id)

        assert result["migrated"] is True
        assert result["node_count"] == 3
        nodes = db_session.query(WorkflowNode).order_by(WorkflowNode.id).all()
        assert [n.type for n in nodes] == [NodeType.START, NodeType.EMAIL, NodeType.EMAIL]
        assert [(n.position_x, n.position_y) for n in nodes] == [(250, 50), (250, 150), (250, 270)]
        assert nodes[1].config["subject"] == "One"
        edges = db_session.query(WorkflowEdge).order_by(WorkflowEdge.id).all()
        assert [(e.source_node_id, e.target_node_id) for e in edges] == [
            (nodes[0].id, nodes[1].id),
            (nodes[1].id, nodes[2].id),
        ]

    def test_migrate_leaves_existing_workflow_alone(self, db_session, team, campaign, start_node):
        result = workflow_builder.migrate_blocks_to_workflow(db_session, team.id, campaign.id)

        assert result["migrated"] is False
        assert db_session.query(WorkflowNode).count() == 1

    def test_execution_plan_tracks_branches(self, db_session, campaign, start_node):
        condition = add_node(db_session, campaign, NodeType.CONDITION)
        yes = add_node(db_session, campaign, NodeType.EMAIL)
        no = add_node(db_session, campaign, NodeType.TASK)
        after_yes = add_node(db_session, campaign, NodeType.DELAY, amount=1)
        edges = [
            connect(db_session, campaign, start_node, condition),
            connect(db_session, campaign, condition, yes, "yes"),
            connect(db_session, campaign, condition, no, "no"),
            connect(db_session, campaign, yes, after_yes),
        ]

        plan = workflow_builder.build_execution_plan(
            start_node, [start_node, condition, yes, no, after_yes], edges
        )

        assert [(step["node_id"], step["path"]) for step in plan] == [
            (start_node.id, "main"),
            (condition.id, "main"),
            (yes.id, "main/yes"),
            (no.id, "main/no"),
            (after_yes.id, "main/yes"),
        ]
        assert [step["step"] for step in plan] == [1, 2, 3, 4, 5]
        assert plan[4]["type"] == "delay"

    def test_execution_plan_visits_cycles_once(self, db_session, campaign, start_node):
        task = add_node(db_session, campaign, NodeType.TASK)
        edges = [connect(db_session, campaign, start_node, task), connect(db_session, campaign, task, start_node)]

        plan = workflow_builder.build_execution_plan(start_node, [start_node, task], edges)

        assert len(plan) == 2

    def test_start_requires_start_node(self, db_session, team, campaign, enrollment):
        with pytest.raises(ValidationError) as exc_info:
            workflow_builder.start_campaign_execution(db_session, team.id, campaign.id)

        assert exc_info.value.error_code == "WORKFLOW_START_NODE_MISSING"

    def test_start_requires_prospects(self, db_session, team, campaign, start_node):
        with pytest.raises(ValidationError) as exc_info:
            workflow_builder.start_campaign_execution(db_session, team.id, campaign.id)

        assert exc_info.value.error_code == "CAMPAIGN_HAS_NO_PROSPECTS"

    def test_start_places_every_prospect(self, db_session, team, user, campaign, enrollment, start_node):
        other = make_prospect(db_session, team, "John Roe")
        add_prospect(db_session, team.id, campaign.id, other.id, user.id, now=NOW)

        result = workflow_builder.start_campaign_execution(db_session, team.id, campaign.id, now=NOW)

        assert result["success"] is True
        assert result["prospect_count"] == 2
        assert result["execution_plan"][0]["node_id"] == start_node.id
        states = db_session.query(WorkflowProspectState).all()
        assert len(states) == 2
        assert {s.current_node_id for s in states} == {start_node.id}
        assert {s.scheduled_for for s in states} == {NOW}

    def test_edge_must_stay_inside_campaign(self, db_session, team, user, campaign, start_node):
        other_campaign = create_campaign(db_session, team.id, user.id, "Other")
        foreign = add_node(db_session, other_campaign, NodeType.EMAIL)

        with pytest.raises(ResourceNotFoundError):
            workflow_builder.create_edge(db_session, team.id, campaign.id, start_node.id, foreign.id)

    def test_condition_edges_need_a_handle(self, db_session, team, campaign):
        condition = add_node(db_session, campaign, NodeType.CONDITION)
        target = add_node(db_session, campaign, NodeType.EMAIL)

        with pytest.raises(ValidationError):
            workflow_builder.create_edge(db_session, team.id, campaign.id, condition.id, target.id)

        edge = workflow_builder.create_edge(db_session, team.id, campaign.id, condition.id, target.id, "no")
        assert edge.source_handle == "no"

    def test_delete_node_drops_edges_and_detaches_prospects(self, db_session, team, campaign, enrollment, start_node):
        email = add_node(db_session, campaign, NodeType.EMAIL)
        connect(db_session, campaign, start_node, email)
        state = initialize_prospect_workflow(db_session, enrollment.id, email.id, NOW)

        workflow_builder.delete_node(db_session, team.id, email.id)

        db_session.expire_all()
        assert db_session.query(WorkflowEdge).count() == 0
        assert db_session.get(WorkflowProspectState, state.id).current_node_id is None

    def test_positions_skip_other_teams(self, db_session, team, user, other_team, campaign, start_node):
        rival = Campaign(team_id=other_team.id, created_by=user.id, name="Rival", blocks=[])
        db_session.add(rival)
        db_session.commit()
        foreign = add_node(db_session, rival, NodeType.START)

        moved = workflow_builder.update_node_positions(db_session, team.id, [
            {"id": start_node.id, "x": 10, "y": 20},
            {"id": foreign.id, "x": 99, "y": 99},
        ])

        assert moved == 1
        db_session.refresh(foreign)
        assert (foreign.position_x, foreign.position_y) == (0, 0)
