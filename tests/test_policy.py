"""Tests for the default authorization policy."""

import pytest
from datetime import date

from taskhive.identity import SessionContext
from taskhive.models import Profile, Query, Reminder, Role, Task
from taskhive.policy import Action, allow_all, may_mutate, require
from taskhive.recovery import PermissionDenied

LEADER = SessionContext(session_id="s1", user_id="u1", profile_id="lead", role=Role.LEADER)
MEMBER = SessionContext(session_id="s2", user_id="u2", profile_id="mem", role=Role.MEMBER)
OTHER = SessionContext(session_id="s3", user_id="u3", profile_id="other", role=Role.MEMBER)

TASK = Task(title="t", created_by_id="lead", assignee_id="mem", deadline=date(2030, 1, 1))
UNASSIGNED = Task(title="t", created_by_id="lead", deadline=date(2030, 1, 1))
REMINDER = Reminder(task_id="t", sent_by="lead", sent_to="mem", message="hi")
QUERY = Query(from_profile_id="mem", to_profile_id="lead", subject="s", message="m")


class TestMayMutate:

    @pytest.mark.parametrize("actor,resource,action,allowed", [
        (LEADER, None, Action.CREATE_TASK, True),
        (MEMBER, None, Action.CREATE_TASK, False),
        (LEADER, TASK, Action.UPDATE_STATUS, True),
        (MEMBER, TASK, Action.UPDATE_STATUS, True),
        (OTHER, TASK, Action.UPDATE_STATUS, False),
        (MEMBER, UNASSIGNED, Action.UPDATE_STATUS, False),
        (OTHER, TASK, Action.COMMENT, True),
        (MEMBER, TASK, Action.SAVE_DOCUMENTATION, True),
        (LEADER, TASK, Action.SAVE_DOCUMENTATION, False),
        (LEADER, TASK, Action.SEND_REMINDER, True),
        (MEMBER, TASK, Action.SEND_REMINDER, False),
        (MEMBER, REMINDER, Action.MARK_READ, True),
        (LEADER, REMINDER, Action.MARK_READ, False),
        (MEMBER, None, Action.RAISE_QUERY, True),
        (LEADER, QUERY, Action.RESPOND_QUERY, True),
        (MEMBER, QUERY, Action.RESPOND_QUERY, False),
    ])
    def test_rules(self, actor, resource, action, allowed):
        assert may_mutate(actor, resource, action) is allowed

    def test_respond_only_as_recipient(self):
        other_leader = SessionContext(session_id="s4", user_id="u4", profile_id="lead2", role=Role.LEADER)
        assert not may_mutate(other_leader, QUERY, Action.RESPOND_QUERY)

    def test_edit_own_expertise_only(self):
        own = Profile(id="mem", user_id="u2", display_name="Mem", avatar_initials="ME")
        assert may_mutate(MEMBER, own, Action.EDIT_EXPERTISE)
        assert not may_mutate(LEADER, own, Action.EDIT_EXPERTISE)

    def test_no_actor(self):
        for action in Action:
            assert not may_mutate(None, TASK, action)
            assert not allow_all(None, TASK, action)


class TestRequire:

    def test_denied_message(self):
        with pytest.raises(PermissionDenied, match="Not allowed to create task"):
            require(may_mutate, MEMBER, None, Action.CREATE_TASK)

    def test_allowed(self):
        assert require(allow_all, MEMBER, None, Action.CREATE_TASK) is None
