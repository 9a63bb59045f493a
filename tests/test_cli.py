"""Tests for the taskhive command line."""

import pytest
from click.testing import CliRunner

from taskhive.cli import main
from taskhive.data import YAMLStore


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("TASKHIVE_DATA_DIR", str(tmp_path / "hive"))
    monkeypatch.delenv("TASKHIVE_STORE_FILE", raising=False)
    return tmp_path / "hive"


@pytest.fixture
def runner():
    return CliRunner()


def invoke(runner, *args, code=0):
    result = runner.invoke(main, list(args), catch_exceptions=False)
    assert result.exit_code == code, result.output
    return result.output


def signup(runner, email, name, password="secret1"):
    return invoke(runner, "signup", "--email", email, "--password", password, "--name", name)


def login(runner, email, password="secret1"):
    return invoke(runner, "login", "--email", email, "--password", password)


def only_task_id(data_dir):
    tasks = YAMLStore(data_dir / "taskhive.yml").select("tasks")
    assert len(tasks) == 1
    return tasks[0]["id"]


@pytest.fixture
def team(runner, data_dir):
    """A leader plus two members; the leader is logged in afterwards."""
    invoke(runner, "init")
    signup(runner, "lead@example.com", "Lena Lead")
    signup(runner, "alice@example.com", "Alice Smith")
    signup(runner, "bob@example.com", "Bob Jones")
    login(runner, "lead@example.com")
    return data_dir


class TestSetup:

    def test_init_creates_store(self, runner, data_dir):
        output = invoke(runner, "init")
        assert "Created taskhive.yml" in output
        assert (data_dir / "taskhive.yml").exists()

        again = invoke(runner, "init")
        assert "already initialized" in again

    def test_first_signup_leads(self, runner, data_dir):
        assert "joined as leader" in signup(runner, "lead@example.com", "Lena Lead")
        assert "joined as member" in signup(runner, "alice@example.com", "Alice Smith")
        assert "Alice Smith (AS) - member" in invoke(runner, "whoami")

    def test_signup_errors(self, runner, data_dir):
        signup(runner, "lead@example.com", "Lena Lead")
        output = invoke(runner, "signup", "--email", "lead@example.com", "--password", "secret1",
                        "--name", "Again", code=1)
        assert "User already registered" in output

    def test_login_logout(self, runner, data_dir):
        signup(runner, "lead@example.com", "Lena Lead")
        invoke(runner, "logout")
        assert "Not logged in" in invoke(runner, "whoami", code=1)
        output = invoke(runner, "login", "--email", "lead@example.com", "--password", "wrong!", code=1)
        assert "Invalid login credentials" in output
        assert "Welcome back, Lena Lead" in login(runner, "lead@example.com")

    def test_data_dir_option(self, runner, tmp_path, monkeypatch):
        monkeypatch.delenv("TASKHIVE_DATA_DIR", raising=False)
        target = tmp_path / "elsewhere"
        invoke(runner, "--data-dir", str(target), "init")
        assert (target / "taskhive.yml").exists()


class TestTaskCommands:

    def test_create_and_board(self, runner, team):
        output = invoke(runner, "task", "create", "Design homepage", "--assignee", "alice smith",
                        "--deadline", "2030-01-10", "--tags", "ui,web")
        assert 'has been assigned to Alice Smith' in output

        board = invoke(runner, "board")
        assert "To Do (1)" in board
        assert "Design homepage (medium)" in board
        assert "Done (0)" in board

    def test_member_cannot_create(self, runner, team):
        login(runner, "alice@example.com")
        output = invoke(runner, "task", "create", "Mine", "--assignee", "Bob Jones",
                        "--deadline", "2030-01-10", code=1)
        assert "Not allowed to create task" in output

    def test_unknown_assignee(self, runner, team):
        output = invoke(runner, "task", "create", "X", "--assignee", "Nobody", "--deadline", "2030-01-10", code=1)
        assert "No profile matching" in output

    def test_status_and_history(self, runner, team):
        invoke(runner, "task", "create", "Ship it", "--assignee", "Alice Smith", "--deadline", "2030-01-10")
        task_id = only_task_id(team)

        login(runner, "alice@example.com")
        assert "moved to in progress" in invoke(runner, "task", "status", task_id[:8], "in-progress")
        assert "In Progress (1)" in invoke(runner, "board")

        invoke(runner, "task", "status", task_id, "done")
        history = invoke(runner, "task", "history")
        assert "Ship it" in history and "Alice Smith" in history

        login(runner, "bob@example.com")
        assert "Not allowed" in invoke(runner, "task", "status", task_id, "todo", code=1)

    def test_show_comments_and_docs(self, runner, team):
        invoke(runner, "task", "create", "Write docs", "--assignee", "Alice Smith", "--deadline", "2030-01-10",
               "--description", "All of them")
        task_id = only_task_id(team)
        invoke(runner, "comment", "add", task_id, "Start with the API")

        login(runner, "alice@example.com")
        invoke(runner, "doc", "save", task_id, "Half done")
        assert invoke(runner, "doc", "show", task_id).strip() == "Half done"
        assert "Lena Lead: Start with the API" in invoke(runner, "comment", "list", task_id)

        shown = invoke(runner, "task", "show", task_id)
        assert "Write docs" in shown
        assert "All of them" in shown
        assert "Half done" in shown
        assert "Comments (1)" in shown

    def test_unknown_task(self, runner, team):
        assert "No task matching" in invoke(runner, "task", "show", "zzzz", code=1)


class TestCoordination:

    def test_reminders(self, runner, team):
        invoke(runner, "task", "create", "Review PR", "--assignee", "Alice Smith", "--deadline", "2030-01-10")
        task_id = only_task_id(team)
        assert "Reminder sent" in invoke(runner, "remind", "send", task_id)

        login(runner, "alice@example.com")
        listed = invoke(runner, "remind", "list")
        assert "1 unread" in listed
        assert "from Lena Lead" in listed

        reminder_id = YAMLStore(team / "taskhive.yml").select("task_reminders")[0]["id"]
        invoke(runner, "remind", "read", reminder_id[:8])
        invoke(runner, "remind", "read", reminder_id[:8])
        assert "All caught up!" in invoke(runner, "remind", "list")

    def test_queries(self, runner, team):
        login(runner, "alice@example.com")
        assert "Query sent" in invoke(runner, "query", "raise", "--to", "Lena Lead",
                                      "-s", "Clarify scope", "-m", "Which pages?")
        assert "Clarify scope" in invoke(runner, "query", "list")

        login(runner, "lead@example.com")
        assert "1 pending" in invoke(runner, "query", "list")
        query_id = YAMLStore(team / "taskhive.yml").select("queries")[0]["id"]
        assert "Response sent" in invoke(runner, "query", "respond", query_id, "Use the new mockups")
        assert "0 pending" in invoke(runner, "query", "list", "--received")
        assert "already been responded" in invoke(runner, "query", "respond", query_id, "again", code=1)

        login(runner, "alice@example.com")
        assert "Use the new mockups" in invoke(runner, "query", "list", "--sent")

    def test_team_and_expertise(self, runner, team):
        login(runner, "bob@example.com")
        assert "Python, SQL" in invoke(runner, "expertise", "Python", "SQL")
        assert "Python, SQL" in invoke(runner, "whoami")
        output = invoke(runner, "team")
        assert "Lena Lead" in output.split("Members:")[0]
        assert "Bob Jones" in output.split("Members:")[1]
