"""
Identity and role resolution.

Profiles and role assignments are separate tables that only meet through
the account id: profile.user_id -> user_roles.user_id. Every workflow starts
by resolving a SessionContext, which carries the actor's profile id and role
for the rest of the request.
"""
import re
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from .auth import LocalAuthProvider
from .data import DataStore
from .logs import get_logger
from .models import AuthSession, Profile, Role, RoleAssignment, SignUpForm, split_tags
from .recovery import NotAuthenticated, NotFound, ValidationError

log = get_logger("identity")


class SessionContext(BaseModel):
    """Who is acting, resolved once per request."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    user_id: str
    profile_id: str
    role: Optional[Role] = None

    @property
    def is_leader(self) -> bool:
        return self.role == Role.LEADER


def first_error(exc: PydanticValidationError) -> str:
    """Human readable message of the first pydantic error."""
    error = exc.errors()[0]
    message = error.get("msg", "Invalid value")
    return message.removeprefix("Value error, ")


def make_initials(display_name: str) -> str:
    words = display_name.split()
    if not words:
        return "?"
    if len(words) == 1:
        return words[0][:2].upper()
    return (words[0][0] + words[1][0]).upper()


def name_from_email(email: str) -> str:
    local = email.split('@', 1)[0]
    words = [w for w in re.split(r'[._\-+]+', local) if w]
    return " ".join(w.capitalize() for w in words) or local


class IdentityResolver:
    """Maps authenticated accounts to profiles and roles."""

    def __init__(self, store: DataStore, auth: Optional[LocalAuthProvider] = None):
        self.store = store
        self.auth = auth or LocalAuthProvider(store)

    # ---- provisioning ----

    def provision(self, user_id: str, display_name: str) -> Profile:
        """
        Create the profile and role for a new account.

        The first account ever provisioned becomes the leader; everyone after
        that joins as a member.
        """
        role = Role.LEADER if self.store.is_empty(RoleAssignment.table) else Role.MEMBER
        self.store.insert(RoleAssignment.table, RoleAssignment(user_id=user_id, role=role).to_record())

        profile = Profile(user_id=user_id, display_name=display_name, avatar_initials=make_initials(display_name))
        self.store.insert(Profile.table, profile.to_record())
        log.info(f"Provisioned {display_name!r} as {role.value}")
        return profile

    def _context(self, session: AuthSession, profile: Profile) -> SessionContext:
        return SessionContext(
            session_id=session.id,
            user_id=session.user_id,
            profile_id=profile.id,
            role=self.role_for_user(session.user_id),
        )

    # ---- session lifecycle ----

    def sign_up(self, email: str, password: str, display_name: str) -> SessionContext:
        try:
            form = SignUpForm(email=email, password=password, display_name=display_name)
        except PydanticValidationError as e:
            raise ValidationError(first_error(e)) from e

        session = self.auth.sign_up(form.email, form.password)
        profile = self.provision(session.user_id, form.display_name)
        return self._context(session, profile)

    def sign_in(self, email: str, password: str) -> SessionContext:
        session = self.auth.sign_in(email, password)
        profile = self.profile_for_user(session.user_id)
        if profile is None:
            # Accounts created outside sign_up get their profile on first login.
            profile = self.provision(session.user_id, name_from_email(email))
        return self._context(session, profile)

    def sign_out(self, context: Optional[SessionContext]) -> None:
        if context is not None:
            self.auth.sign_out(context.session_id)

    def resolve(self, context: Optional[SessionContext]) -> SessionContext:
        """Re-check a context against the auth provider and refresh its role."""
        if context is None:
            raise NotAuthenticated("Not authenticated")
        return self.context_for_session(context.session_id)

    def context_for_session(self, session_id: Optional[str]) -> SessionContext:
        account = self.auth.current(session_id)
        profile = self.profile_for_user(account.id)
        if profile is None:
            raise NotAuthenticated("No profile for the current account")
        return SessionContext(
            session_id=session_id,
            user_id=account.id,
            profile_id=profile.id,
            role=self.role_for_user(account.id),
        )

    # ---- lookups ----

    def profile_for_user(self, user_id: str) -> Optional[Profile]:
        row = self.store.select_one(Profile.table, {"user_id": user_id})
        return Profile.from_record(row) if row else None

    def get_profile(self, profile_id: Optional[str]) -> Optional[Profile]:
        if not profile_id:
            return None
        row = self.store.get(Profile.table, profile_id)
        return Profile.from_record(row) if row else None

    def profiles(self) -> List[Profile]:
        """All profiles ordered by display name."""
        rows = self.store.select(Profile.table, order_by="display_name")
        return [Profile.from_record(r) for r in rows]

    def role_for_user(self, user_id: str) -> Optional[Role]:
        row = self.store.select_one(RoleAssignment.table, {"user_id": user_id})
        return Role(row["role"]) if row else None

    def role_of(self, profile_id: str) -> Optional[Role]:
        """Role of a profile, joined through its account. None when unresolvable."""
        profile = self.get_profile(profile_id)
        if profile is None:
            log.debug(f"role_of: unknown profile {profile_id}")
            return None
        return self.role_for_user(profile.user_id)

    def roles(self) -> Dict[str, Role]:
        """Role per account id."""
        return {row["user_id"]: Role(row["role"]) for row in self.store.select(RoleAssignment.table)}

    # ---- profile edits ----

    def update_expertise(self, profile_id: str, expertise: List[str]) -> Profile:
        cleaned = split_tags(expertise)
        seen = set()
        for skill in cleaned:
            if skill.lower() in seen:
                raise ValidationError(f"Skill already added: {skill}")
            seen.add(skill.lower())

        if self.store.get(Profile.table, profile_id) is None:
            raise NotFound(f"No profile {profile_id}")
        row = self.store.update(Profile.table, profile_id, {"expertise": cleaned})
        log.info(f"Expertise updated for profile {profile_id}: {cleaned}")
        return Profile.from_record(row)
