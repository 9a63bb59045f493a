"""Shared fixtures: a board over an in-memory store and signed-in people."""

import pytest
from datetime import date, timedelta

from taskhive.board import TeamBoard
from taskhive.data import MemoryStore


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def board(store):
    return TeamBoard(store)


@pytest.fixture
def leader(board):
    """First account on the board, so it is the leader."""
    result = board.sign_up("lead@example.com", "secret1", "Lena Lead")
    assert result.ok, result.error
    return result.value


@pytest.fixture
def alice(board, leader):
    result = board.sign_up("alice@example.com", "secret2", "Alice Smith")
    assert result.ok, result.error
    return result.value


@pytest.fixture
def bob(board, leader):
    result = board.sign_up("bob@example.com", "secret3", "Bob")
    assert result.ok, result.error
    return result.value


@pytest.fixture
def tomorrow():
    return date.today() + timedelta(days=1)


@pytest.fixture
def task(board, leader, alice, tomorrow):
    """A task assigned to Alice."""
    result = board.create_task(leader, title="Write release notes", assignee_id=alice.profile_id, deadline=tomorrow)
    assert result.ok, result.error
    return result.value
