"""
Command Line Interface for TaskHive.
"""

import click
from datetime import date
from pathlib import Path
from typing import Iterable, Optional

from .board import TeamBoard
from .config import get_settings
from .data import YAMLStore, atomic_write, load_yaml_file
from .data.io import DATA_YAML
from .identity import SessionContext
from .models import Priority, TaskStatus
from .recovery import TaskHiveError
from .version import VERSION
from .views import BOARD_COLUMNS

SHORT_ID = 8


class CLIState:
    """Per-invocation state: settings, the board over the store file, and the saved session."""

    def __init__(self, data_dir: Optional[Path] = None):
        self.settings = get_settings()
        if data_dir is not None:
            self.settings = self.settings.model_copy(update={"data_dir": Path(data_dir)})
        self._board = None

    @property
    def board(self) -> TeamBoard:
        if self._board is None:
            try:
                self._board = TeamBoard(YAMLStore(self.settings.store_path))
            except TaskHiveError as e:
                _fail(f"Cannot open store {self.settings.store_path}: {e}")
        return self._board

    def load_session(self) -> Optional[SessionContext]:
        data = load_yaml_file(self.settings.session_path)
        if not data or not data.get("session_id"):
            return None
        try:
            return self.board.identity.context_for_session(data["session_id"])
        except TaskHiveError:
            return None

    def save_session(self, context: Optional[SessionContext]):
        data = {"session_id": context.session_id if context else None}
        atomic_write(DATA_YAML, self.settings.session_path, data, create_dirs=True)


def _fail(message: str):
    click.echo(f"❌ {message}")
    raise click.exceptions.Exit(1)

def _unwrap(result):
    if not result.ok:
        _fail(str(result.error))
    return result.value

def _short(record_id: str) -> str:
    return record_id[:SHORT_ID]

def _match_id(ids: Iterable[str], prefix: str, kind: str) -> str:
    """Resolve a full id from a unique prefix."""
    matches = [i for i in ids if i.startswith(prefix)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        _fail(f"No {kind} matching '{prefix}'")
    _fail(f"'{prefix}' matches {len(matches)} {kind}s; use more characters")

def _session(state: CLIState) -> SessionContext:
    context = state.load_session()
    if context is None:
        _fail("Not logged in. Run 'taskhive login' first")
    return context

def _find_profile(profiles, ref: str):
    """Find a profile by display name (case-insensitive) or id prefix."""
    by_name = [p for p in profiles if p.display_name.lower() == ref.lower()]
    if len(by_name) == 1:
        return by_name[0]
    profile_id = _match_id([p.id for p in profiles], ref, "profile")
    return next(p for p in profiles if p.id == profile_id)

def _task_id(state: CLIState, context: SessionContext, prefix: str) -> str:
    tasks = _unwrap(state.board.list_tasks(context))
    return _match_id([t.id for t in tasks], prefix, "task")


@click.group()
@click.version_option(version=VERSION, prog_name="taskhive")
@click.option('--data-dir', type=click.Path(file_okay=False, path_type=Path), default=None,
              help='Directory holding the store file (default: $TASKHIVE_DATA_DIR or .taskhive)')
@click.pass_context
def main(ctx, data_dir):
    """
    TaskHive - a team task board with leaders, members, reminders and queries.
    """
    ctx.obj = CLIState(data_dir)


@main.command()
@click.pass_obj
def init(state):
    """Create an empty store in the data directory."""
    store_path = state.settings.store_path
    if store_path.exists():
        click.echo(f"❌ Store already initialized ({store_path} exists)")
        return

    click.echo(f"🚀 Initializing TaskHive store in {state.settings.data_dir}")
    try:
        state.board.store.save()
    except TaskHiveError as e:
        _fail(f"Error initializing store: {e}")
    click.echo(f"📋 Created {store_path.name}")
    click.echo("💡 The first account to sign up becomes the team leader")


@main.command()
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--name', 'display_name', prompt='Display name')
@click.pass_obj
def signup(state, email, password, display_name):
    """Create an account and log in."""
    context = _unwrap(state.board.sign_up(email, password, display_name))
    state.save_session(context)
    click.echo(f"✅ Welcome to TaskHive, {display_name.strip()}! You joined as {context.role.value}")


@main.command()
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True)
@click.pass_obj
def login(state, email, password):
    """Log in to an existing account."""
    context = _unwrap(state.board.sign_in(email, password))
    state.save_session(context)
    profile = _unwrap(state.board.whoami(context))
    click.echo(f"✅ Welcome back, {profile.display_name}!")


@main.command()
@click.pass_obj
def logout(state):
    """Log out of the current session."""
    context = state.load_session()
    if context is not None:
        _unwrap(state.board.sign_out(context))
    state.save_session(None)
    click.echo("👋 Logged out")


@main.command()
@click.pass_obj
def whoami(state):
    """Show the current profile and role."""
    context = _session(state)
    profile = _unwrap(state.board.whoami(context))
    role = context.role.value if context.role else "no role"
    click.echo(f"👤 {profile.display_name} ({profile.avatar_initials}) - {role}")
    if profile.expertise:
        click.echo(f"   ✨ {', '.join(profile.expertise)}")


@main.command()
@click.pass_obj
def team(state):
    """List the team with open and completed task counts."""
    context = _session(state)
    snapshot = _unwrap(state.board.snapshot(context))
    active = snapshot.active_counts()
    completed = snapshot.completed_counts()

    click.echo("👑 Leaders:")
    for profile in snapshot.leaders():
        click.echo(f"   {profile.avatar_initials:>2}  {profile.display_name}  [{_short(profile.id)}]")
    click.echo("👥 Members:")
    for profile in snapshot.members():
        click.echo(f"   {profile.avatar_initials:>2}  {profile.display_name}  [{_short(profile.id)}]"
                   f"  open: {active.get(profile.id, 0)}  done: {completed.get(profile.id, 0)}")


@main.command()
@click.argument('skills', nargs=-1)
@click.pass_obj
def expertise(state, skills):
    """Replace your expertise tags (no arguments clears them)."""
    context = _session(state)
    profile = _unwrap(state.board.update_expertise(context, list(skills)))
    click.echo(f"✨ Expertise saved: {', '.join(profile.expertise) or '(none)'}")


@main.command()
@click.pass_obj
def board(state):
    """Show the four-column board."""
    context = _session(state)
    snapshot = _unwrap(state.board.snapshot(context))
    columns = snapshot.columns()
    today = date.today()

    for status, title in BOARD_COLUMNS:
        tasks = columns[status]
        click.echo(f"📋 {title} ({len(tasks)})")
        for task in tasks:
            assignee = snapshot.profile(task.assignee_id)
            flag = " ⚠️  overdue" if task.is_overdue(today) else (" ⏰ due today" if task.is_due_today(today) else "")
            comments = len(snapshot.comments.get(task.id, []))
            click.echo(f"   [{_short(task.id)}] {task.title} ({task.priority.value})"
                       f" → {assignee.avatar_initials if assignee else '?'}"
                       f"  📅 {task.deadline.isoformat()}  💬 {comments}{flag}")
        click.echo("")

    pending = snapshot.pending_count()
    unread = snapshot.unread_count()
    if pending:
        click.echo(f"❓ {pending} pending quer{'y' if pending == 1 else 'ies'}")
    if unread:
        click.echo(f"🔔 {unread} unread reminder{'' if unread == 1 else 's'}")


@main.group()
def task():
    """Create, inspect and move tasks."""
    pass


@task.command('create')
@click.argument('title')
@click.option('-a', '--assignee', required=True, help='Member display name or id')
@click.option('-d', '--deadline', required=True, type=click.DateTime(formats=['%Y-%m-%d']), help='Due date (YYYY-MM-DD)')
@click.option('-p', '--priority', type=click.Choice([p.value for p in Priority]), default=None, help='Defaults to medium')
@click.option('--description', default=None)
@click.option('-t', '--tags', default=None, help='Comma-separated tags')
@click.pass_obj
def task_create(state, title, assignee, deadline, priority, description, tags):
    """Create a task and assign it to a member (leaders only)."""
    context = _session(state)
    members = _unwrap(state.board.member_roster(context))
    if not members:
        _fail("No team members to assign to yet")
    member = _find_profile(members, assignee)
    created = _unwrap(state.board.create_task(
        context,
        title=title,
        assignee_id=member.id,
        deadline=deadline.date(),
        description=description,
        priority=priority,
        tags=tags,
    ))
    click.echo(f"✅ Task created [{_short(created.id)}]: \"{created.title}\" has been assigned to {member.display_name}")


@task.command('list')
@click.option('--mine', is_flag=True, help='Only tasks assigned to you')
@click.pass_obj
def task_list(state, mine):
    """List tasks, newest first."""
    context = _session(state)
    tasks = _unwrap(state.board.list_tasks(context))
    if mine:
        tasks = [t for t in tasks if t.assignee_id == context.profile_id]
    if not tasks:
        click.echo("📭 No tasks")
        return
    for t in tasks:
        click.echo(f"[{_short(t.id)}] {t.status.value:<11} {t.priority.value:<6} {t.title}")


@task.command('show')
@click.argument('task_ref')
@click.pass_obj
def task_show(state, task_ref):
    """Show a task with its comments and documentation."""
    context = _session(state)
    task_id = _task_id(state, context, task_ref)
    snapshot = _unwrap(state.board.snapshot(context))
    t = next(t for t in snapshot.tasks if t.id == task_id)
    creator = snapshot.profile(t.created_by_id)
    assignee = snapshot.profile(t.assignee_id)

    click.echo(f"📌 {t.title}  [{t.id}]")
    click.echo(f"   Status: {t.status.label}   Priority: {t.priority.value}   Deadline: {t.deadline.isoformat()}")
    click.echo(f"   Assignee: {assignee.display_name if assignee else ('Unassigned' if not t.assignee_id else 'Unknown')}")
    click.echo(f"   Created by {creator.display_name if creator else 'Unknown'} on {t.created_at.strftime('%b %d, %Y')}")
    if t.tags:
        click.echo(f"   🏷️  {', '.join(t.tags)}")
    if t.description:
        click.echo("")
        click.echo(f"   {t.description}")

    doc = _unwrap(state.board.get_documentation(context, task_id))
    click.echo("")
    click.echo("📝 Documentation:")
    click.echo(f"   {doc.content}" if doc.content else "   (none yet)")

    click.echo("")
    click.echo(f"💬 Comments ({len(snapshot.comments.get(task_id, []))}):")
    for comment in snapshot.comments.get(task_id, []):
        author = snapshot.profile(comment.author_id)
        click.echo(f"   {author.display_name if author else 'Unknown'} "
                   f"({comment.created_at.strftime('%b %d, %H:%M')}): {comment.content}")


@task.command('status')
@click.argument('task_ref')
@click.argument('status', type=click.Choice([s.value for s in TaskStatus]))
@click.pass_obj
def task_status(state, task_ref, status):
    """Move a task to another column."""
    context = _session(state)
    task_id = _task_id(state, context, task_ref)
    updated = _unwrap(state.board.update_status(context, task_id, status))
    click.echo(f"✅ Status updated: task moved to {updated.status.label}")


@task.command('history')
@click.pass_obj
def task_history(state):
    """Show completed tasks."""
    context = _session(state)
    snapshot = _unwrap(state.board.snapshot(context))
    entries = snapshot.history()
    if not entries:
        click.echo("📭 No completed tasks yet.")
        return
    for entry in entries:
        click.echo(f"✅ {entry.task.title}  👤 {entry.assignee_name}"
                   f"  📅 Completed: {entry.completed_at.strftime('%b %d, %Y')}")


@main.group()
def comment():
    """Discuss a task."""
    pass


@comment.command('add')
@click.argument('task_ref')
@click.argument('content')
@click.pass_obj
def comment_add(state, task_ref, content):
    """Add a comment to a task."""
    context = _session(state)
    task_id = _task_id(state, context, task_ref)
    _unwrap(state.board.add_comment(context, task_id, content))
    click.echo("💬 Comment added")


@comment.command('list')
@click.argument('task_ref')
@click.pass_obj
def comment_list(state, task_ref):
    """Show a task's comments, oldest first."""
    context = _session(state)
    task_id = _task_id(state, context, task_ref)
    comments = _unwrap(state.board.list_comments(context, task_id))
    if not comments:
        click.echo("📭 No comments yet")
        return
    profiles = {p.id: p for p in state.board.identity.profiles()}
    for c in comments:
        author = profiles.get(c.author_id)
        click.echo(f"{author.display_name if author else 'Unknown'}: {c.content}")


@main.group()
def doc():
    """Read or write a task's documentation note."""
    pass


@doc.command('show')
@click.argument('task_ref')
@click.pass_obj
def doc_show(state, task_ref):
    """Print a task's documentation."""
    context = _session(state)
    task_id = _task_id(state, context, task_ref)
    note = _unwrap(state.board.get_documentation(context, task_id))
    if not note.saved:
        click.echo("📭 No documentation yet")
        return
    click.echo(note.content)


@doc.command('save')
@click.argument('task_ref')
@click.argument('content')
@click.pass_obj
def doc_save(state, task_ref, content):
    """Replace a task's documentation (assignee only)."""
    context = _session(state)
    task_id = _task_id(state, context, task_ref)
    _unwrap(state.board.save_documentation(context, task_id, content))
    click.echo("📝 Documentation saved")


@main.group()
def remind():
    """Send and read reminders."""
    pass


@remind.command('send')
@click.argument('task_ref')
@click.option('-m', '--message', default=None, help='Defaults to a standard nudge')
@click.pass_obj
def remind_send(state, task_ref, message):
    """Remind a task's assignee (leaders only)."""
    context = _session(state)
    task_id = _task_id(state, context, task_ref)
    _unwrap(state.board.send_reminder(context, task_id, message))
    click.echo("🔔 Reminder sent: the team member has been notified.")


@remind.command('list')
@click.pass_obj
def remind_list(state):
    """Show reminders addressed to you."""
    context = _session(state)
    reminders = _unwrap(state.board.list_reminders(context))
    unread = sum(1 for r in reminders if not r.is_read)
    click.echo(f"🔔 Reminders - {f'{unread} unread' if unread else 'All caught up!'}")
    for r in reminders:
        marker = "•" if not r.is_read else " "
        click.echo(f" {marker} [{_short(r.id)}] {r.task_title} - from {r.sender_name} "
                   f"({r.created_at.strftime('%b %d, %H:%M')})")
        click.echo(f"     {r.message}")


@remind.command('read')
@click.argument('reminder_ref')
@click.pass_obj
def remind_read(state, reminder_ref):
    """Mark a reminder as read."""
    context = _session(state)
    reminders = _unwrap(state.board.list_reminders(context))
    reminder_id = _match_id([r.id for r in reminders], reminder_ref, "reminder")
    _unwrap(state.board.mark_reminder_read(context, reminder_id))
    click.echo("✅ Marked as read")


@main.group()
def query():
    """Ask a leader a question, or answer one."""
    pass


@query.command('raise')
@click.option('--to', 'leader', required=True, help='Leader display name or id')
@click.option('-s', '--subject', required=True)
@click.option('-m', '--message', required=True)
@click.option('--task', 'task_ref', default=None, help='Related task id')
@click.pass_obj
def query_raise(state, leader, subject, message, task_ref):
    """Send a query to a team leader."""
    context = _session(state)
    leaders = _unwrap(state.board.leader_roster(context))
    if not leaders:
        _fail("There is no team leader to ask")
    recipient = _find_profile(leaders, leader)
    task_id = _task_id(state, context, task_ref) if task_ref else None
    _unwrap(state.board.raise_query(context, to_profile_id=recipient.id, subject=subject, message=message, task_id=task_id))
    click.echo("❓ Query sent to team leader!")


@query.command('list')
@click.option('--sent', 'box', flag_value='sent', help='Queries you sent')
@click.option('--received', 'box', flag_value='received', help='Queries sent to you')
@click.pass_obj
def query_list(state, box):
    """List queries (leaders default to received, members to sent)."""
    context = _session(state)
    box = box or ('received' if context.is_leader else 'sent')
    if box == 'received':
        queries = _unwrap(state.board.received_queries(context))
        pending = _unwrap(state.board.pending_query_count(context))
        click.echo(f"📥 Received ({pending} pending)")
    else:
        queries = _unwrap(state.board.sent_queries(context))
        click.echo("📤 Sent")

    if not queries:
        click.echo("   📭 No queries")
        return
    for q in queries:
        click.echo(f"   [{_short(q.id)}] {q.status.value:<9} {q.subject}")
        click.echo(f"       {q.message}")
        if q.response:
            click.echo(f"       ↳ {q.response}")


@query.command('respond')
@click.argument('query_ref')
@click.argument('response')
@click.pass_obj
def query_respond(state, query_ref, response):
    """Answer a query sent to you (leaders only)."""
    context = _session(state)
    queries = _unwrap(state.board.received_queries(context))
    query_id = _match_id([q.id for q in queries], query_ref, "query")
    _unwrap(state.board.respond_query(context, query_id, response))
    click.echo("✅ Response sent!")


if __name__ == "__main__":
    main()
