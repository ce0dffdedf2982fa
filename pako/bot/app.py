"""
Bot — the coordinator between Telegram and everything else.

Responsibilities:
- Long-poll updates and handle each in its own task
- Reject chats that aren't on the allowlist
- Dispatch commands according to their capabilities:
    SCHEDULE  → schedule menu (run now / pause / resume)
    ARGUMENTS → interactive argument collection
    CONFIRM   → Confirm / Cancel prompt before running
- Stream output, upload referenced files, audit and track messages
- Serve as the Scheduler's executor via execute_scheduled()

The periodic sweep of expired argument sessions lives inside run() and
stops with it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Coroutine, Iterable

from pako.arguments.collector import NO_SESSION_MESSAGE, ArgumentCollector
from pako.arguments.spec import ArgumentKind, ArgumentSpec
from pako.bot import menu
from pako.bot.fileref import FileRef, detect_kind, group_files, has_files, parse_output
from pako.bot.streamer import MessageStreamer
from pako.commands.base import Capability, Command
from pako.core.config import DefaultsConfig
from pako.core.errors import ExecutionError, PakoError, ShellError, TemplateError, TransportError
from pako.security.auth import Allowlist
from pako.security.confirm import ConfirmationManager, PendingConfirmation
from pako.store.audit import AuditEntry, NopAuditLog
from pako.store.messages import MessageKind, MessageStore

if TYPE_CHECKING:
    from pako.bot.telegram import TelegramAPI
    from pako.commands.builtin.cleanup import CleanupCommand
    from pako.commands.registry import CommandRegistry
    from pako.scheduler.engine import Scheduler
    from pako.store.audit import AuditLog

logger = logging.getLogger(__name__)

POLL_RETRY_DELAY = 5.0  # seconds after a failed getUpdates
REDACTED = "***"


class Bot:
    """
    Telegram front end.

    Usage:
        bot = Bot(api, registry, allowlist, collector, confirmations, config.defaults)
        bot.set_scheduler(scheduler)
        await bot.notify_startup()
        await bot.run()          # until cancelled
    """

    def __init__(
        self,
        api: "TelegramAPI",
        registry: "CommandRegistry",
        allowlist: Allowlist,
        collector: ArgumentCollector,
        confirmations: ConfirmationManager,
        defaults: DefaultsConfig | None = None,
        audit: "AuditLog | NopAuditLog | None" = None,
        messages: MessageStore | None = None,
        cleanup: "CleanupCommand | None" = None,
        poll_timeout: int = 30,
        edit_interval: float = 1.0,
        argument_sweep_interval: float = 60.0,
    ) -> None:
        self._api = api
        self._registry = registry
        self._allowlist = allowlist
        self._collector = collector
        self._confirmations = confirmations
        self._defaults = defaults or DefaultsConfig()
        self._audit = audit or NopAuditLog()
        self._messages = messages or MessageStore()
        self._cleanup = cleanup
        self._poll_timeout = poll_timeout
        self._edit_interval = edit_interval
        self._sweep_interval = argument_sweep_interval

        self._scheduler: "Scheduler | None" = None
        self._tasks: set[asyncio.Task] = set()

    def set_scheduler(self, scheduler: "Scheduler") -> None:
        """The scheduler backing the pause/resume buttons."""
        self._scheduler = scheduler

    # ━━━ Main loop ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    async def run(self) -> None:
        """Poll for updates until cancelled."""
        offset = 0
        sweep = asyncio.create_task(self._sweep_arguments(), name="argument-sweep")
        logger.info("Bot polling started")
        try:
            while True:
                try:
                    updates = await self._api.get_updates(offset, timeout=self._poll_timeout)
                except TransportError as e:
                    logger.warning(f"Polling failed, retrying in {POLL_RETRY_DELAY:g}s: {e}")
                    await asyncio.sleep(POLL_RETRY_DELAY)
                    continue

                for update in updates or []:
                    offset = max(offset, int(update.get("update_id", 0)) + 1)
                    self._spawn(self.handle_update(update))
        finally:
            sweep.cancel()
            pending = [sweep, *self._tasks]
            for task in self._tasks:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            self._tasks.clear()
            logger.info("Bot polling stopped")

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _sweep_arguments(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            self._collector.cleanup_expired()

    async def notify_startup(self, chat_ids: Iterable[int] | None = None) -> None:
        """Tell every allowed chat the bot is up."""
        from pako import __version__

        for chat_id in chat_ids if chat_ids is not None else self._allowlist.chat_ids:
            try:
                await self._api.send_message(
                    chat_id, f"Pako {__version__} started. Send /menu to see commands."
                )
            except TransportError as e:
                logger.warning(f"Startup notification to chat {chat_id} failed: {e}")

    # ━━━ Update dispatch ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    async def handle_update(self, update: dict) -> None:
        """Handle one update. Errors are logged, never raised."""
        try:
            if "callback_query" in update:
                await self._handle_callback(update["callback_query"])
            elif "message" in update:
                await self._handle_message(update["message"])
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Failed to handle update {update.get('update_id')}: {e}", exc_info=True)

    async def _handle_message(self, message: dict) -> None:
        chat_id = message["chat"]["id"]
        text = message.get("text") or ""
        username = (message.get("from") or {}).get("username", "")

        if not text.startswith("/"):
            if self._allowlist.is_allowed(chat_id) and self._collector.has_session(chat_id):
                await self._handle_argument_input(chat_id, message)
            return

        name, raw_args = parse_command(text)
        if not self._allowlist.is_allowed(chat_id):
            logger.warning(f"Unauthorized access attempt from chat {chat_id} (/{name})")
            await self._send_text(
                chat_id, f"Unauthorized. Your chat ID ({chat_id}) is not in the allowlist."
            )
            return

        if name == "cancel":
            await self._handle_cancel(chat_id)
        elif name in ("start", "menu"):
            await self.send_menu(chat_id)
        else:
            await self._handle_command(chat_id, name, raw_args, username)

    async def _handle_command(self, chat_id: int, name: str, raw_args: str, username: str) -> None:
        cmd = self._registry.get(name)
        if cmd is None:
            await self._send_text(
                chat_id, f"Unknown command: /{name}\nUse /help to see available commands."
            )
            return

        if self._cleanup is not None and cmd is self._cleanup:
            await self._show_cleanup_menu(chat_id)
            return

        if cmd.has(Capability.SCHEDULE):
            await self._show_schedule_menu(chat_id, cmd)
            return

        if cmd.has(Capability.ARGUMENTS):
            await self._start_arguments(chat_id, cmd)
            return

        # File-producing commands get the raw text as one argument, newlines intact
        if cmd.has(Capability.FILE_RESPONSE):
            args = [raw_args] if raw_args else []
        else:
            args = raw_args.split()

        if cmd.has(Capability.CONFIRM):
            await self._request_confirmation(chat_id, cmd, args)
            return

        logger.info(f"Executing /{name} for chat {chat_id} ({len(args)} arg(s))")
        await self.run_command(chat_id, cmd, args, username=username)
        await self.send_menu(chat_id)

    async def _handle_cancel(self, chat_id: int) -> None:
        if self._collector.has_session(chat_id):
            self._collector.cancel_session(chat_id)
            await self._send_text(chat_id, "Command cancelled.")
        else:
            await self._send_text(chat_id, "No active command to cancel.")

    # ━━━ Callbacks ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    async def _handle_callback(self, query: dict) -> None:
        message = query.get("message") or {}
        chat_id = message.get("chat", {}).get("id")
        message_id = message.get("message_id")
        data = query.get("data") or ""

        if chat_id is None or not self._allowlist.is_allowed(chat_id):
            logger.warning(f"Unauthorized callback from chat {chat_id}")
            return

        try:
            await self._api.answer_callback_query(query["id"])
        except TransportError as e:
            logger.debug(f"answerCallbackQuery failed: {e}")

        kind, value = menu.parse_callback(data)
        if kind == "argument":
            await self._handle_argument_callback(chat_id, message_id, value)
        elif kind == "menu":
            text, markup = menu.main_menu(self._registry)
            await self._edit(chat_id, message_id, text, markup)
        elif kind == "category":
            text, markup = menu.category_menu(self._registry, value)
            await self._edit(chat_id, message_id, text, markup)
        elif kind == "command":
            await self._handle_menu_command(chat_id, message_id, value)
        elif kind == "cleanup":
            await self._handle_cleanup(chat_id, message_id, value)
        elif kind == "schedule":
            await self._handle_schedule_action(chat_id, message_id, data)
        elif kind == "confirm":
            await self._handle_confirmation(chat_id, message_id, data)
        else:
            logger.debug(f"Ignoring unknown callback data {data!r}")

    async def _handle_menu_command(self, chat_id: int, message_id: int, name: str) -> None:
        cmd = self._registry.get(name)
        if cmd is None:
            logger.warning(f"Command /{name} from menu not found")
            return

        if self._cleanup is not None and cmd is self._cleanup:
            await self._show_cleanup_menu(chat_id, message_id)
            return

        if cmd.has(Capability.SCHEDULE):
            await self._delete(chat_id, message_id)
            await self._show_schedule_menu(chat_id, cmd)
            return

        if cmd.has(Capability.ARGUMENTS):
            await self._delete(chat_id, message_id)
            await self._start_arguments(chat_id, cmd)
            return

        if cmd.has(Capability.CONFIRM):
            await self._delete(chat_id, message_id)
            await self._request_confirmation(chat_id, cmd, [])
            return

        if cmd.quiet:
            await self._delete(chat_id, message_id)
        else:
            await self._edit(chat_id, message_id, f"Running /{name}...")

        logger.info(f"Executing /{name} from menu for chat {chat_id}")
        await self.run_command(chat_id, cmd, [], quiet=cmd.quiet)
        await self.send_menu(chat_id)

    async def _handle_confirmation(self, chat_id: int, message_id: int, data: str) -> None:
        pending, confirmed = self._confirmations.resolve(data)
        if pending is None:
            await self._edit(chat_id, message_id, "Confirmation expired or invalid.")
            return
        if not confirmed:
            await self._edit(chat_id, message_id, "Command cancelled.")
            return

        await self._edit(chat_id, message_id, f"Executing /{pending.command}...")
        cmd = self._registry.get(pending.command)
        if cmd is None:
            await self._send_text(chat_id, f"Command /{pending.command} no longer exists.")
            return
        await self._run_confirmed(chat_id, cmd, pending)
        await self.send_menu(chat_id)

    async def _run_confirmed(self, chat_id: int, cmd: Command, pending: PendingConfirmation) -> None:
        if pending.rendered is not None:
            await self.run_command(
                chat_id, cmd, [], rendered=pending.rendered, audit_args=pending.shown
            )
        else:
            await self.run_command(chat_id, cmd, list(pending.args))

    async def _request_confirmation(
        self,
        chat_id: int,
        cmd: Command,
        args: list[str],
        rendered: str | None = None,
        shown: str | None = None,
    ) -> None:
        pending = self._confirmations.request(
            chat_id, cmd.name, args, rendered=rendered, shown=shown
        )
        prompt = pending.prompt()
        logger.info(f"Requesting confirmation for /{cmd.name} in chat {chat_id}")
        try:
            sent = await self._api.send_message(
                chat_id, prompt, reply_markup=menu.confirm_keyboard(pending.id)
            )
        except TransportError as e:
            logger.error(f"Failed to request confirmation for /{cmd.name}: {e}")
            return
        self._confirmations.attach_message(pending.id, sent["message_id"])

    # ━━━ Scheduled commands ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    async def _show_schedule_menu(self, chat_id: int, cmd: Command) -> None:
        paused = self._scheduler.is_paused(cmd.name) if self._scheduler else False
        text, markup = menu.schedule_menu(cmd, paused)
        await self._send(chat_id, text, markup)

    async def _handle_schedule_action(self, chat_id: int, message_id: int, data: str) -> None:
        action, name = menu.parse_schedule_callback(data)
        if not name:
            logger.warning(f"Invalid schedule callback {data!r}")
            return

        cmd = self._registry.get(name)
        if cmd is None:
            await self._edit(chat_id, message_id, "Command not found.")
            return

        if action == "run":
            await self._delete(chat_id, message_id)
            logger.info(f"Running scheduled command /{name} manually for chat {chat_id}")
            if not cmd.quiet:
                await self._send_text(chat_id, f"Running /{name}...")
            await self.run_command(chat_id, cmd, [], quiet=cmd.quiet)
            await self.send_menu(chat_id)
            return

        if self._scheduler is not None:
            self._scheduler.set_paused(name, action == "pause")
        await self._delete(chat_id, message_id)
        await self._show_schedule_menu(chat_id, cmd)

    async def execute_scheduled(self, chat_id: int, command: Command) -> None:
        """
        Scheduler executor: run a command unattended for one chat.

        Confirmation is skipped. Raises ExecutionError when the command
        fails so the scheduler can log it.
        """
        logger.info(f"Executing scheduled /{command.name} for chat {chat_id}")
        if not command.quiet:
            await self._send_text(chat_id, f"Scheduled: Running /{command.name}...")
        error = await self.run_command(chat_id, command, [], quiet=command.quiet, username="scheduler")
        if error is not None:
            raise ExecutionError(str(error), command=command.name, chat_id=chat_id)

    # ━━━ Argument collection ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    async def _start_arguments(self, chat_id: int, cmd: Command) -> None:
        logger.info(f"Collecting arguments for /{cmd.name} in chat {chat_id}")
        session = self._collector.start_session(
            chat_id, cmd.arguments, command=cmd, timeout=cmd.argument_timeout
        )
        if session.is_complete:
            await self._execute_with_arguments(chat_id)
        else:
            await self._prompt_next(chat_id)

    async def _prompt_next(self, chat_id: int) -> None:
        spec = self._collector.current_spec(chat_id)
        if spec is None:
            return
        text, markup = menu.argument_prompt(spec)
        message_id = await self._send(chat_id, text, markup)
        if message_id is not None:
            self._collector.set_last_prompt(chat_id, message_id)

    async def _handle_argument_input(self, chat_id: int, message: dict) -> None:
        spec = self._collector.current_spec(chat_id)
        raw = _resolve_numbered_choice(spec, message.get("text") or "")

        error = self._collector.submit(chat_id, raw)
        if error == NO_SESSION_MESSAGE:
            await self._send_text(chat_id, "Argument collection timed out. Please try again.")
            return
        if error:
            text, markup = menu.argument_prompt(spec) if spec else ("", None)
            await self._send(chat_id, f"Invalid input: {error}\n\n{text}".rstrip(), markup)
            return

        if spec is not None and spec.sensitive:
            await self._delete(chat_id, message["message_id"])

        await self._advance_arguments(chat_id)

    async def _handle_argument_callback(self, chat_id: int, message_id: int, value: str) -> None:
        spec = self._collector.current_spec(chat_id)
        if spec is None:
            await self._edit(chat_id, message_id, "Session expired. Please start over.")
            return

        error = self._collector.submit(chat_id, value)
        if error:
            await self._edit(chat_id, message_id, f"Invalid selection: {error}")
            return

        await self._edit(chat_id, message_id, f"Selected {spec.name}: {value}")
        await self._advance_arguments(chat_id)

    async def _advance_arguments(self, chat_id: int) -> None:
        session = self._collector.get_session(chat_id)
        if session is None or session.is_complete:
            await self._execute_with_arguments(chat_id)
        else:
            await self._prompt_next(chat_id)

    async def _execute_with_arguments(self, chat_id: int) -> None:
        collected, cmd = self._collector.complete_session(chat_id)
        if cmd is None:
            return

        try:
            rendered = cmd.render(collected)
            shown = cmd.render(_mask_sensitive(cmd.arguments, collected))
        except TemplateError as e:
            logger.error(f"Failed to render /{cmd.name}: {e}")
            await self._send_text(chat_id, f"Failed to process command: {e}")
            return

        logger.info(f"Executing /{cmd.name} with arguments {sorted(collected)} for chat {chat_id}")
        if cmd.has(Capability.CONFIRM):
            await self._request_confirmation(chat_id, cmd, [], rendered=rendered, shown=shown)
            return

        await self.run_command(chat_id, cmd, [], rendered=rendered, audit_args=shown)
        await self.send_menu(chat_id)

    # ━━━ Execution ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    async def run_command(
        self,
        chat_id: int,
        cmd: Command,
        args: list[str],
        quiet: bool = False,
        rendered: str | None = None,
        username: str = "",
        audit_args: str | None = None,
    ) -> Exception | None:
        """
        Run a command with live output, then deliver any files.

        `audit_args` is what the audit log records instead of the command
        line, so sensitive argument values never reach the database.

        Returns the failure (already reported in the chat), or None.
        """
        meta = cmd.metadata if cmd.has(Capability.TIMEOUT) else None
        timeout = meta.timeout if meta and meta.timeout > 0 else self._defaults.timeout
        max_output = meta.max_output if meta and meta.max_output > 0 else self._defaults.max_output

        streamer = MessageStreamer(
            self._api,
            chat_id,
            max_output=max_output,
            edit_interval=self._edit_interval,
            quiet=quiet,
        )
        try:
            await streamer.start()
        except TransportError as e:
            logger.error(f"Failed to start output for /{cmd.name} in chat {chat_id}: {e}")
            return e
        if streamer.message_id is not None:
            await self._track(chat_id, [streamer.message_id], MessageKind.TEXT)

        started = time.monotonic()
        error: Exception | None = None
        exit_code = 0
        try:
            if rendered is not None:
                await asyncio.wait_for(cmd.execute_rendered(rendered, streamer), timeout=timeout)
            else:
                await asyncio.wait_for(cmd.execute(args, streamer), timeout=timeout)
        except asyncio.TimeoutError:
            error = ExecutionError(f"Command timed out after {timeout:g}s", command=cmd.name, chat_id=chat_id)
            exit_code = -1
        except ShellError as e:
            error = e
            exit_code = e.exit_code if e.exit_code is not None else 1
        except PakoError as e:
            error = e
            exit_code = 1
        except Exception as e:
            logger.error(f"/{cmd.name} raised unexpectedly: {e}", exc_info=True)
            error = e
            exit_code = 1
        duration_ms = int((time.monotonic() - started) * 1000)

        if error is not None:
            logger.error(f"/{cmd.name} failed for chat {chat_id}: {error}")
            await streamer.write(f"\n\nError: {error}")

        output = streamer.content()
        refs = None
        if error is None and has_files(output):
            refs = parse_output(output, cmd.workdir)
            display = refs.text
            if not display.strip() and refs.files and not quiet:
                display = f"Sending {len(refs.files)} file(s)..."
            await streamer.flush(display)
        else:
            await streamer.flush()

        if refs is not None:
            await self._deliver_files(chat_id, refs.files, refs.errors)
        if error is None and cmd.has(Capability.FILE_RESPONSE):
            await self._deliver_file_response(chat_id, cmd)

        if audit_args is None:
            audit_args = " ".join(args) if rendered is None else rendered
        await self._record(chat_id, cmd, audit_args, exit_code, duration_ms, username)
        return error

    async def _deliver_files(self, chat_id: int, files: list[FileRef], errors: list[str]) -> None:
        if errors:
            await self._send_text(chat_id, "\n".join(errors))
        for group in group_files(files, self._defaults.max_files_per_group):
            try:
                ids = await self._api.send_media_group(chat_id, group)
            except TransportError as e:
                logger.error(f"Failed to send {len(group)} file(s) to chat {chat_id}: {e}")
                await self._send_text(chat_id, f"Failed to send files: {e}")
                continue
            await self._track(chat_id, ids, MessageKind.FILE)

    async def _deliver_file_response(self, chat_id: int, cmd: Command) -> None:
        response = cmd.file_response()
        if response is None or not response.path:
            return
        path = Path(response.path)
        if not path.exists():
            await self._send_text(chat_id, f"File not found: {path}")
            return
        try:
            sent = await self._api.send_file(
                chat_id, FileRef(path=str(path), kind=detect_kind(str(path))), response.caption
            )
            await self._track(chat_id, [sent["message_id"]], MessageKind.FILE)
        except TransportError as e:
            logger.error(f"Failed to send {path} to chat {chat_id}: {e}")
            await self._send_text(chat_id, f"Failed to send file: {e}")
        finally:
            if response.cleanup:
                try:
                    path.unlink()
                except OSError as e:
                    logger.warning(f"Failed to remove {path}: {e}")

    async def _record(
        self,
        chat_id: int,
        cmd: Command,
        args: str,
        exit_code: int,
        duration_ms: int,
        username: str,
    ) -> None:
        entry = AuditEntry(
            chat_id=chat_id,
            command=cmd.name,
            args=args,
            username=username,
            exit_code=exit_code,
            duration_ms=duration_ms,
        )
        try:
            await self._audit.log(entry)
        except PakoError as e:
            logger.warning(f"Audit log write failed: {e}")

    # ━━━ Cleanup ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    async def _show_cleanup_menu(self, chat_id: int, message_id: int | None = None) -> None:
        from pako.commands.builtin.cleanup import DISABLED_MESSAGE

        if self._cleanup is None or not self._cleanup.enabled:
            text, markup = DISABLED_MESSAGE, None
        else:
            text, markup = menu.cleanup_menu(
                self._cleanup.count(chat_id), self._cleanup.menu_options(chat_id)
            )
        if message_id is None:
            await self._send(chat_id, text, markup)
        else:
            await self._edit(chat_id, message_id, text, markup)

    async def _handle_cleanup(self, chat_id: int, message_id: int, option: str) -> None:
        if self._cleanup is None or not self._cleanup.enabled:
            await self._edit(chat_id, message_id, "Cleanup is not enabled.")
            return

        try:
            deleted, failed = await self._cleanup.execute_cleanup(chat_id, option)
        except PakoError as e:
            logger.error(f"Cleanup failed for chat {chat_id}: {e}")
            await self._edit(chat_id, message_id, f"Cleanup failed: {e}")
            return

        if deleted == 0 and failed == 0:
            text = "No messages to delete."
        else:
            text = f"Cleanup complete.\n\nDeleted: {deleted} messages"
            if failed:
                text += f"\nFailed: {failed} (messages may already be deleted or too old)"
        await self._edit(chat_id, message_id, text)
        await self.send_menu(chat_id)

    # ━━━ Transport helpers ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    async def send_menu(self, chat_id: int) -> None:
        text, markup = menu.main_menu(self._registry)
        await self._send(chat_id, text, markup)

    async def _send(self, chat_id: int, text: str, markup: dict | None = None) -> int | None:
        try:
            sent = await self._api.send_message(chat_id, text, reply_markup=markup)
        except TransportError as e:
            logger.error(f"Failed to send message to chat {chat_id}: {e}")
            return None
        return sent["message_id"]

    async def _send_text(self, chat_id: int, text: str) -> int | None:
        """Send a plain message and track it for cleanup."""
        message_id = await self._send(chat_id, text)
        if message_id is not None:
            await self._track(chat_id, [message_id], MessageKind.TEXT)
        return message_id

    async def _edit(self, chat_id: int, message_id: int, text: str, markup: dict | None = None) -> None:
        try:
            await self._api.edit_message_text(chat_id, message_id, text, reply_markup=markup)
        except TransportError as e:
            logger.error(f"Failed to edit message {message_id} in chat {chat_id}: {e}")

    async def _delete(self, chat_id: int, message_id: int) -> None:
        try:
            await self._api.delete_message(chat_id, message_id)
        except TransportError as e:
            logger.debug(f"Failed to delete message {message_id} in chat {chat_id}: {e}")

    async def _track(self, chat_id: int, message_ids: list[int], kind: MessageKind) -> None:
        try:
            await self._messages.add_batch(chat_id, message_ids, kind)
        except PakoError as e:
            logger.warning(f"Failed to track messages in chat {chat_id}: {e}")


# ━━━ Helpers ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def parse_command(text: str) -> tuple[str, str]:
    """
    Split "/deploy@my_bot prod 1.2" into ("deploy", "prod 1.2").

    The remainder keeps its internal newlines; only the separator after
    the command is dropped.
    """
    head, sep, rest = text.partition(" ")
    if "\n" in head:
        head, sep, rest = text.partition("\n")
        head = head.split(" ")[0]
    name = head[1:].split("@", 1)[0].lower()
    return name, rest.strip(" ") if sep else ""


def _mask_sensitive(specs: Iterable[ArgumentSpec], values: dict[str, str]) -> dict[str, str]:
    """Collected values with every sensitive one replaced by REDACTED."""
    secret = {spec.name for spec in specs if spec.sensitive}
    return {name: REDACTED if name in secret else value for name, value in values.items()}


def _resolve_numbered_choice(spec: ArgumentSpec | None, raw: str) -> str:
    """Map "2" to the second option when choices were shown as a numbered list."""
    if spec is None or spec.kind != ArgumentKind.CHOICE:
        return raw
    if len(spec.choices) <= menu.MAX_INLINE_CHOICES or raw in spec.choices:
        return raw
    text = raw.strip()
    if text.isascii() and text.isdigit() and 1 <= int(text) <= len(spec.choices):
        return spec.choices[int(text) - 1]
    return raw
