"""
TaskFlow Calendar — Telegram Bot.

Telegram is the user interface: login, the month calendar, the task list,
user management and event-type settings are all commands here.

Each Telegram user has their own Session, persisted in the store under
``current-user:<telegram id>`` and restored on their first message.
Commands other than /start, /help and /login require a session.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import replace
from datetime import date, datetime
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Coroutine

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    ConversationHandler,
    MessageHandler,
    filters,
)
from telegram.helpers import escape_markdown

from taskflow.config import settings
from taskflow.core.auth import SESSION_KEY, AuthService, LoginAttempt, Session
from taskflow.core.calendar_grid import CalendarState, MonthView
from taskflow.core.errors import AuthError, TaskFlowError, ValidationError
from taskflow.core.forms import (
    EventDraft,
    format_phone_number,
    validate_event,
    validate_event_type,
    validate_user,
)
from taskflow.core.lifecycle import (
    FILTER_TABS,
    QUICK_ACTION_LABELS,
    STATUS_LABELS,
    apply_quick_action,
    available_quick_actions,
    filter_events,
    override_status,
)
from taskflow.core.permissions import capability_matrix, can_access, visible_sections
from taskflow.core.verification import (
    ResendCooldown,
    VerificationService,
    format_countdown,
    send_invitation,
)
from taskflow.data.models import ROLES, Event
from taskflow.data.storage import StorageCorruptError
from taskflow.data.store import DataStore, resolve_event_type
from taskflow.ports.sms_port import TransportError

if TYPE_CHECKING:
    from taskflow.ports.sms_port import SmsPort

logger = logging.getLogger(__name__)

Handler = Callable[..., Coroutine[Any, Any, Any]]


def _md(text: str) -> str:
    return escape_markdown(text, version=1)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


def get_session(update: Update, context: ContextTypes.DEFAULT_TYPE) -> Session:
    """Return this Telegram user's session, restoring it on first use."""
    session = context.user_data.get("session")
    if session is None:
        auth: AuthService = context.bot_data["auth"]
        session = auth.restore_session(f"{SESSION_KEY}:{update.effective_user.id}")
        context.user_data["session"] = session
    return session


def login_required(func: Handler) -> Handler:
    """Decorator that sends users without a session to /login."""

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> Any:
        session = get_session(update, context)
        if not session.is_authenticated:
            logger.warning("Unauthenticated access from telegram user %s", update.effective_user.id)
            await update.effective_message.reply_text("Please /login first.")
            return None
        return await func(update, context)

    return wrapper


def roles_required(*roles: str) -> Callable[[Handler], Handler]:
    """Decorator restricting a command to the given roles (after login)."""

    def decorator(func: Handler) -> Handler:
        @wraps(func)
        async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> Any:
            session = get_session(update, context)
            if not session.is_authenticated:
                await update.effective_message.reply_text("Please /login first.")
                return None
            if session.current_user.role not in roles:
                logger.warning(
                    "User %s (%s) denied access to %s",
                    session.current_user.id, session.current_user.role, func.__name__,
                )
                await update.effective_message.reply_text(
                    "You don't have access to this section."
                )
                return None
            return await func(update, context)

        return wrapper

    return decorator


# ---------------------------------------------------------------------------
# Start / help / unknown
# ---------------------------------------------------------------------------


async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — welcome message."""
    session = get_session(update, context)
    if session.is_authenticated:
        user = session.current_user
        sections = ", ".join(visible_sections(user.role))
        await update.message.reply_text(
            f"Welcome back, *{_md(user.name)}* ({user.role}).\n"
            f"Sections: {sections}\n\nType /help for the command list.",
            parse_mode="Markdown",
        )
        return
    await update.message.reply_text(
        "Welcome to *TaskFlow Calendar*!\n\n"
        "Schedule and track cleaning, maintenance and meeting tasks.\n"
        "Use /login to sign in with your phone number.",
        parse_mode="Markdown",
    )


async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help — list available commands."""
    await update.message.reply_text(
        "*Available commands:*\n"
        "/login — Sign in with your phone number\n"
        "/logout — Sign out\n"
        "/calendar [YYYY-MM] — Month calendar\n"
        "/day YYYY-MM-DD — Events on a day\n"
        "/view month|week|day — Calendar view mode\n"
        "/tasks [all|cleaning|maintenance] — Task list\n"
        "/addevent YYYY-MM-DD HH:MM HH:MM <type id> <title> — New event\n"
        "/assign <event id> <user id> ... — Set assignees\n"
        "/setstatus <event id> <status> — Change status\n"
        "/deleteevent <event id> — Delete an event\n"
        "/users, /adduser, /deleteuser, /invite — User management\n"
        "/types, /addtype, /deletetype, /permissions — Settings\n"
        "/help — Show this message",
    )


async def cmd_unknown(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Catch-all for unmatched commands."""
    await update.message.reply_text("Page not found. Use /help to see what's available.")


# ---------------------------------------------------------------------------
# Login conversation
# ---------------------------------------------------------------------------

(
    LOGIN_PHONE,
    LOGIN_CODE,
    LOGIN_PASSWORD,
) = range(3)


async def cmd_login(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Handle /login — start the login conversation."""
    session = get_session(update, context)
    if session.is_authenticated:
        await update.message.reply_text(
            f"You're already logged in as {session.current_user.name}. Use /logout to switch."
        )
        return ConversationHandler.END

    context.user_data["login"] = LoginAttempt(
        auth=context.bot_data["auth"],
        verification=context.bot_data["verification"],
        cooldown=context.bot_data["cooldown"],
        session=session,
    )
    await update.message.reply_text("Enter your phone number (e.g. +1234567890).")
    return LOGIN_PHONE


async def _send_login_code(
    attempt: LoginAttempt, update: Update, context: ContextTypes.DEFAULT_TYPE,
) -> bool:
    try:
        code = await attempt.send_code()
    except TransportError as exc:
        logger.error("Verification SMS failed for %s: %s", attempt.phone, exc)
        await update.message.reply_text("Failed to send verification code. Please try again.")
        return False

    wait = format_countdown(attempt.resend_wait())
    await update.message.reply_text(
        f"A verification code was sent to {attempt.phone}.\n"
        f"Enter it here. You can /resend in {wait}."
    )
    if settings.SHOW_CODES_IN_DEV:
        await update.message.reply_text(f"Verification code: {code} (shown only in development)")
    return True


async def login_phone(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Receive the phone number, send a code (or skip to password)."""
    attempt: LoginAttempt = context.user_data["login"]
    try:
        attempt.set_phone(update.message.text)
    except ValidationError as exc:
        await update.message.reply_text(str(exc))
        return LOGIN_PHONE

    if not attempt.require_verification:
        await update.message.reply_text("Enter your password.")
        return LOGIN_PASSWORD

    if not await _send_login_code(attempt, update, context):
        return LOGIN_PHONE
    return LOGIN_CODE


async def login_resend(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Handle /resend during login — honours the countdown."""
    attempt: LoginAttempt = context.user_data["login"]
    wait = attempt.resend_wait()
    if wait > 0:
        await update.message.reply_text(f"You can request a new code in {format_countdown(wait)}.")
        return LOGIN_CODE
    await _send_login_code(attempt, update, context)
    return LOGIN_CODE


async def login_code(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Receive the verification code."""
    attempt: LoginAttempt = context.user_data["login"]
    try:
        attempt.verify(update.message.text)
    except (ValidationError, AuthError) as exc:
        await update.message.reply_text(f"{exc}. Try again or /resend.")
        return LOGIN_CODE
    await update.message.reply_text("Code accepted. Enter your password.")
    return LOGIN_PASSWORD


async def login_password(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Receive the password and finish the login."""
    attempt: LoginAttempt = context.user_data["login"]
    try:
        user = attempt.complete(update.message.text.strip())
    except (ValidationError, AuthError) as exc:
        await update.message.reply_text(f"{exc}. Try again or /cancel.")
        return LOGIN_PASSWORD

    context.user_data.pop("login", None)
    sections = ", ".join(visible_sections(user.role))
    await update.message.reply_text(
        f"✅ Welcome, *{_md(user.name)}*!\nSections: {sections}",
        parse_mode="Markdown",
    )
    return ConversationHandler.END


async def login_cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    context.user_data.pop("login", None)
    await update.message.reply_text("Login cancelled.")
    return ConversationHandler.END


async def cmd_logout(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /logout — clear the persisted session."""
    session = get_session(update, context)
    auth: AuthService = context.bot_data["auth"]
    auth.logout(session)
    context.user_data.pop("calendar", None)
    await update.message.reply_text("You have been logged out.")


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------


def _parse_date(text: str) -> date:
    return datetime.strptime(text, "%Y-%m-%d").date()


def _calendar_state(context: ContextTypes.DEFAULT_TYPE) -> CalendarState:
    state = context.user_data.get("calendar")
    if state is None:
        state = CalendarState.for_today(week_start=settings.WEEK_START)
        context.user_data["calendar"] = state
    return state


def format_month(view: MonthView) -> str:
    """Render a MonthView as a monospace grid plus a per-day event list."""
    lines = [f"*{view.title}*", "```"]
    lines.append(" ".join(f"{label[:3]:>4}" for label in view.weekday_labels))
    for week in view.weeks:
        row = []
        for cell in week:
            if not cell.in_month:
                mark = "·"
            elif cell.is_selected:
                mark = "<"
            elif cell.chips:
                mark = "*"
            else:
                mark = " "
            row.append(f"{cell.day.day:>3}{mark}")
        lines.append(" ".join(row))
    lines.append("```")

    for cell in view.cells():
        if not cell.in_month or not cell.chips:
            continue
        labels = [_md(chip.label) for chip in cell.chips]
        if cell.more_label:
            labels.append(cell.more_label)
        today = " (today)" if cell.is_today else ""
        lines.append(f"{cell.day:%b %d}{today}: " + "; ".join(labels))
    return "\n".join(lines)


_CALENDAR_KEYBOARD = InlineKeyboardMarkup([[
    InlineKeyboardButton("◀", callback_data="cal:prev"),
    InlineKeyboardButton("▶", callback_data="cal:next"),
]])


def _render_calendar(context: ContextTypes.DEFAULT_TYPE) -> str:
    store: DataStore = context.bot_data["store"]
    state = _calendar_state(context)
    view = state.render(store.get_events(), store.get_event_types())
    return format_month(view)


@login_required
async def cmd_calendar(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /calendar [YYYY-MM] — show the month grid."""
    state = _calendar_state(context)
    if context.args:
        try:
            state.current_month = datetime.strptime(context.args[0], "%Y-%m").date()
        except ValueError:
            await update.message.reply_text("Usage: /calendar [YYYY-MM]")
            return

    try:
        text = _render_calendar(context)
    except TaskFlowError as exc:
        await update.message.reply_text(f"{exc}. Use /view month.")
        return
    await update.message.reply_text(text, parse_mode="Markdown", reply_markup=_CALENDAR_KEYBOARD)


@login_required
async def _handle_calendar_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle the ◀/▶ buttons under the month grid."""
    query = update.callback_query
    await query.answer()

    state = _calendar_state(context)
    if query.data == "cal:prev":
        state.prev_month()
    else:
        state.next_month()

    try:
        text = _render_calendar(context)
    except TaskFlowError as exc:
        await query.edit_message_text(f"{exc}. Use /view month.")
        return
    await query.edit_message_text(text, parse_mode="Markdown", reply_markup=_CALENDAR_KEYBOARD)


def _format_event_line(event: Event, context: ContextTypes.DEFAULT_TYPE) -> str:
    store: DataStore = context.bot_data["store"]
    event_type = resolve_event_type(event, store.get_event_types())
    line = (
        f"`{event.id}` {event.start_time:%H:%M}–{event.end_time:%H:%M} "
        f"*{_md(event.title)}* ({_md(event_type.name)}) — {STATUS_LABELS.get(event.status, event.status)}"
    )
    if event.location:
        line += f"\n    📍 {_md(event.location)}"
    if event.assigned_to:
        names = ", ".join(store.user_name(uid) for uid in event.assigned_to)
        line += f"\n    👤 {_md(names)}"
    return line


@login_required
async def cmd_day(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /day YYYY-MM-DD — select a day and list its events."""
    if not context.args:
        await update.message.reply_text("Usage: /day YYYY-MM-DD")
        return
    try:
        day = _parse_date(context.args[0])
    except ValueError:
        await update.message.reply_text("Invalid date. Use YYYY-MM-DD.")
        return

    store: DataStore = context.bot_data["store"]
    state = _calendar_state(context)
    state.select(day)
    state.current_month = day

    events = [ev for ev in store.get_events() if ev.start_time.date() == day]
    lines = [f"*{day:%A, %B %d, %Y}*\n"]
    if events:
        lines.extend(_format_event_line(ev, context) for ev in events)
    else:
        lines.append("No events on this day.")
    lines.append(
        f"\nNew event: `/addevent {day.isoformat()} 09:00 10:00 <type id> <title>`"
    )
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


@login_required
async def cmd_view(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /view month|week|day."""
    state = _calendar_state(context)
    if not context.args:
        await update.message.reply_text(f"Current view: {state.view}. Usage: /view month|week|day")
        return
    try:
        state.set_view(context.args[0].lower())
    except ValidationError as exc:
        await update.message.reply_text(str(exc))
        return
    if state.view == "month":
        await update.message.reply_text("Month view selected. Use /calendar.")
    else:
        await update.message.reply_text(
            f"{state.view.capitalize()} view selected. It is not available yet; "
            "switch back with /view month."
        )


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


def _tasks_message(
    context: ContextTypes.DEFAULT_TYPE, tab: str,
) -> tuple[str, InlineKeyboardMarkup | None]:
    store: DataStore = context.bot_data["store"]
    events = filter_events(store.get_events(), store.get_event_types(), tab)
    if not events:
        return "No tasks found for this category.", None

    lines = [f"*Tasks — {tab}*\n"]
    buttons = []
    for ev in events:
        lines.append(f"{ev.start_time:%b %d, %Y} " + _format_event_line(ev, context))
        row = [
            InlineKeyboardButton(
                f"{QUICK_ACTION_LABELS[target]} {ev.id}",
                callback_data=f"status:{ev.id}:{target}",
            )
            for target in available_quick_actions(ev.status)
        ]
        if row:
            buttons.append(row)
    markup = InlineKeyboardMarkup(buttons) if buttons else None
    return "\n".join(lines), markup


@login_required
async def cmd_tasks(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /tasks [all|cleaning|maintenance]."""
    tab = context.args[0].lower() if context.args else "all"
    if tab not in FILTER_TABS:
        await update.message.reply_text("Usage: /tasks [all|cleaning|maintenance]")
        return
    context.user_data["tasks_tab"] = tab
    text, markup = _tasks_message(context, tab)
    await update.message.reply_text(text, parse_mode="Markdown", reply_markup=markup)


@login_required
async def _handle_status_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle Start / Mark Complete buttons."""
    query = update.callback_query
    await query.answer()

    _, event_id, target = query.data.split(":", 2)
    store: DataStore = context.bot_data["store"]
    event = store.get_event(event_id)
    if event is None:
        await query.edit_message_text("Task not found.")
        return

    try:
        apply_quick_action(store, event, target)
    except TaskFlowError as exc:
        await query.edit_message_text(str(exc))
        return

    text, markup = _tasks_message(context, context.user_data.get("tasks_tab", "all"))
    await query.edit_message_text(text, parse_mode="Markdown", reply_markup=markup)


@login_required
async def cmd_setstatus(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /setstatus <event id> <status> — edit-form status change."""
    if len(context.args or []) != 2:
        await update.message.reply_text(
            "Usage: /setstatus <event id> <scheduled|in-progress|completed|cancelled>"
        )
        return
    event_id, status = context.args
    store: DataStore = context.bot_data["store"]
    event = store.get_event(event_id)
    if event is None:
        await update.message.reply_text(f"No event with id {event_id}.")
        return
    try:
        updated = override_status(store, event, status.lower())
    except ValidationError as exc:
        await update.message.reply_text(str(exc))
        return
    await update.message.reply_text(
        f"✅ *{_md(updated.title)}* is now {STATUS_LABELS[updated.status]}.",
        parse_mode="Markdown",
    )


@login_required
async def cmd_addevent(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /addevent YYYY-MM-DD HH:MM HH:MM <type id> <title>."""
    session = get_session(update, context)
    if not can_access(session.current_user.role, "Create Events"):
        await update.message.reply_text("You don't have permission to create events.")
        return

    args = context.args or []
    if len(args) < 5:
        await update.message.reply_text(
            "Usage: /addevent YYYY-MM-DD HH:MM HH:MM <type id> <title>\nUse /types to see type ids."
        )
        return

    try:
        start = datetime.strptime(f"{args[0]} {args[1]}", "%Y-%m-%d %H:%M")
        end = datetime.strptime(f"{args[0]} {args[2]}", "%Y-%m-%d %H:%M")
    except ValueError:
        await update.message.reply_text("Invalid date or time. Use YYYY-MM-DD and HH:MM.")
        return

    store: DataStore = context.bot_data["store"]
    draft = EventDraft(
        title=" ".join(args[4:]),
        start_time=start,
        end_time=end,
        event_type_id=args[3],
        created_by=session.current_user.id,
    )
    try:
        if store.get_event_type(draft.event_type_id) is None:
            raise ValidationError(f"No event type with id {draft.event_type_id}")
        event = store.save_event(validate_event(draft))
    except ValidationError as exc:
        await update.message.reply_text(str(exc))
        return

    await update.message.reply_text(
        f"✅ Event created: *{_md(event.title)}* on {event.start_time:%Y-%m-%d} "
        f"at {event.start_time:%H:%M} (id `{event.id}`)",
        parse_mode="Markdown",
    )


@login_required
async def cmd_assign(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /assign <event id> <user id> ... — replace the assignee list."""
    args = context.args or []
    if not args:
        await update.message.reply_text("Usage: /assign <event id> <user id> ...")
        return
    store: DataStore = context.bot_data["store"]
    event = store.get_event(args[0])
    if event is None:
        await update.message.reply_text(f"No event with id {args[0]}.")
        return

    unknown = [uid for uid in args[1:] if store.get_user(uid) is None]
    if unknown:
        await update.message.reply_text(f"Unknown user id(s): {', '.join(unknown)}")
        return

    draft = replace(EventDraft.from_event(event), assigned_to=args[1:])
    try:
        updated = store.save_event(validate_event(draft, reject_inverted=False))
    except ValidationError as exc:
        await update.message.reply_text(str(exc))
        return
    names = ", ".join(store.user_name(uid) for uid in updated.assigned_to) or "nobody"
    await update.message.reply_text(f"✅ {updated.title} assigned to {names}.")


@login_required
async def cmd_deleteevent(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /deleteevent <event id>."""
    if not context.args:
        await update.message.reply_text("Usage: /deleteevent <event id>")
        return
    store: DataStore = context.bot_data["store"]
    if store.delete_event(context.args[0]):
        await update.message.reply_text("✅ Event deleted.")
    else:
        await update.message.reply_text(f"No event with id {context.args[0]}.")


# ---------------------------------------------------------------------------
# Users (admin / manager)
# ---------------------------------------------------------------------------


@roles_required("admin", "manager")
async def cmd_users(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /users — list users."""
    store: DataStore = context.bot_data["store"]
    users = store.get_users()
    if not users:
        await update.message.reply_text("No users.")
        return
    lines = ["*Users:*\n"]
    for u in users:
        lines.append(f"`{u.id}` — {_md(u.name)} ({u.role}) {_md(u.phone)}")
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


@roles_required("admin", "manager")
async def cmd_adduser(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /adduser <phone> <role> <name>."""
    args = context.args or []
    if len(args) < 3:
        await update.message.reply_text(f"Usage: /adduser <phone> <{'|'.join(ROLES)}> <name>")
        return

    store: DataStore = context.bot_data["store"]
    try:
        user = validate_user(name=" ".join(args[2:]), phone=args[0], role=args[1])
        if store.find_user_by_phone(user.phone) is not None:
            raise ValidationError(f"A user with phone {user.phone} already exists")
        user = store.save_user(user)
    except ValidationError as exc:
        await update.message.reply_text(str(exc))
        return
    await update.message.reply_text(f"✅ User {user.name} added (id {user.id}).")


@roles_required("admin", "manager")
async def cmd_deleteuser(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /deleteuser <user id>. Users cannot delete themselves."""
    if not context.args:
        await update.message.reply_text("Usage: /deleteuser <user id>")
        return
    session = get_session(update, context)
    user_id = context.args[0]
    if user_id == session.current_user.id:
        await update.message.reply_text("You can't delete your own account.")
        return
    store: DataStore = context.bot_data["store"]
    if store.delete_user(user_id):
        await update.message.reply_text("✅ User deleted.")
    else:
        await update.message.reply_text(f"No user with id {user_id}.")


@roles_required("admin", "manager")
async def cmd_invite(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /invite <phone> [role] — send an invitation SMS."""
    args = context.args or []
    if not args:
        await update.message.reply_text("Usage: /invite <phone> [role]")
        return
    role = args[1].lower() if len(args) > 1 else "staff"
    if role not in ROLES:
        await update.message.reply_text(f"Unknown role: {role}")
        return

    session = get_session(update, context)
    phone = format_phone_number(args[0])
    sms: SmsPort = context.bot_data["sms"]
    try:
        await send_invitation(sms, phone, session.current_user.name or "TaskFlow Admin", role)
    except ValidationError as exc:
        await update.message.reply_text(str(exc))
        return
    except TransportError as exc:
        logger.error("Invitation SMS failed for %s: %s", phone, exc)
        await update.message.reply_text("Failed to send invitation")
        return
    await update.message.reply_text(f"✅ Invitation sent to {phone}")


# ---------------------------------------------------------------------------
# Settings: event types and permissions
# ---------------------------------------------------------------------------


@roles_required("admin", "manager")
async def cmd_types(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /types — list event types."""
    store: DataStore = context.bot_data["store"]
    types = store.get_event_types()
    if not types:
        await update.message.reply_text("No event types.")
        return
    lines = ["*Event types:*\n"]
    for t in types:
        category = _md(f"[{t.category}]")
        lines.append(f"`{t.id}` — {_md(t.name)} {category} {t.color}")
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


@roles_required("admin", "manager")
async def cmd_addtype(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /addtype <category> <#color> <name>."""
    args = context.args or []
    if len(args) < 3:
        await update.message.reply_text(
            "Usage: /addtype <cleaning|maintenance|general|meeting> <#rrggbb> <name>"
        )
        return
    store: DataStore = context.bot_data["store"]
    try:
        event_type = store.save_event_type(
            validate_event_type(name=" ".join(args[2:]), category=args[0], color=args[1])
        )
    except ValidationError as exc:
        await update.message.reply_text(str(exc))
        return
    await update.message.reply_text(f"✅ Event type {event_type.name} added (id {event_type.id}).")


@roles_required("admin", "manager")
async def cmd_deletetype(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /deletetype <type id>. Events of that type become 'Unknown'."""
    if not context.args:
        await update.message.reply_text("Usage: /deletetype <type id>")
        return
    store: DataStore = context.bot_data["store"]
    type_id = context.args[0]
    orphaned = sum(1 for ev in store.get_events() if ev.event_type_id == type_id)
    if not store.delete_event_type(type_id):
        await update.message.reply_text(f"No event type with id {type_id}.")
        return
    msg = "✅ Event type deleted."
    if orphaned:
        msg += f"\n{orphaned} event(s) now show as Unknown type."
    await update.message.reply_text(msg)


@roles_required("admin", "manager")
async def cmd_permissions(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /permissions — role capability table."""
    header = f"{'Feature':<20}" + "".join(f"{r.capitalize():>9}" for r in ROLES)
    lines = ["*Role permissions*", "```", header]
    for feature, allowed in capability_matrix():
        lines.append(f"{feature:<20}" + "".join(f"{'✓' if a else '✗':>9}" for a in allowed))
    lines.append("```")
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


def build_app(
    store: DataStore | None = None,
    sms: SmsPort | None = None,
) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        store: Domain store. Defaults to one backed by DATABASE_PATH.
        sms: SMS port implementation. Defaults to the simulated sender.
    """
    # Opened before the Telegram app so corrupt data stops start-up
    if store is None:
        store = DataStore()

    if sms is None:
        from taskflow.adapters.mock_sms import MockSmsSender
        sms = MockSmsSender()

    app = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN).build()

    app.bot_data["store"] = store
    app.bot_data["sms"] = sms
    app.bot_data["auth"] = AuthService(store)
    app.bot_data["verification"] = VerificationService(sms)
    app.bot_data["cooldown"] = ResendCooldown()

    _text = filters.TEXT & ~filters.COMMAND
    login_conv = ConversationHandler(
        entry_points=[CommandHandler("login", cmd_login)],
        states={
            LOGIN_PHONE: [MessageHandler(_text, login_phone)],
            LOGIN_CODE: [
                MessageHandler(_text, login_code),
                CommandHandler("resend", login_resend),
            ],
            LOGIN_PASSWORD: [MessageHandler(_text, login_password)],
        },
        fallbacks=[CommandHandler("cancel", login_cancel)],
    )
    app.add_handler(login_conv)

    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(CommandHandler("logout", cmd_logout))
    app.add_handler(CommandHandler("calendar", cmd_calendar))
    app.add_handler(CommandHandler("day", cmd_day))
    app.add_handler(CommandHandler("view", cmd_view))
    app.add_handler(CommandHandler("tasks", cmd_tasks))
    app.add_handler(CommandHandler("addevent", cmd_addevent))
    app.add_handler(CommandHandler("assign", cmd_assign))
    app.add_handler(CommandHandler("setstatus", cmd_setstatus))
    app.add_handler(CommandHandler("deleteevent", cmd_deleteevent))
    app.add_handler(CommandHandler("users", cmd_users))
    app.add_handler(CommandHandler("adduser", cmd_adduser))
    app.add_handler(CommandHandler("deleteuser", cmd_deleteuser))
    app.add_handler(CommandHandler("invite", cmd_invite))
    app.add_handler(CommandHandler("types", cmd_types))
    app.add_handler(CommandHandler("addtype", cmd_addtype))
    app.add_handler(CommandHandler("deletetype", cmd_deletetype))
    app.add_handler(CommandHandler("permissions", cmd_permissions))
    app.add_handler(CallbackQueryHandler(_handle_calendar_callback, pattern=r"^cal:(prev|next)$"))
    app.add_handler(CallbackQueryHandler(_handle_status_callback, pattern=r"^status:"))

    # Anything else that looks like a command
    app.add_handler(MessageHandler(filters.COMMAND, cmd_unknown))

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting TaskFlow Calendar bot...")
    try:
        app = build_app()
    except StorageCorruptError as exc:
        logger.critical("Stored data is corrupt, refusing to start: %s", exc)
        sys.exit(1)
    app.run_polling()


if __name__ == "__main__":
    main()
