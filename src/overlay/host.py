"""
Host Overlay Controller - edit mode, context menu, staging and commit on the
host side of the channel.

The controller never touches the embedded document directly: every change
goes to the frame as a message, and every frame report arrives through
`handle_message`.
"""

import logging
from typing import Awaitable, Callable, List, Optional

from src.overlay.changes import ElementChanges
from src.overlay.messages import (
    ApplyChanges,
    ArmResize,
    ChannelError,
    Cleanup,
    DeleteElement,
    DuplicateElement,
    ElementDescriptor,
    FrameMessage,
    HostMessage,
    MessageChannel,
    ShowContextMenu,
    StageChanges,
)
from src.overlay.staging import ChangeHistory, ChangeStagingStore, StagedEntry

logger = logging.getLogger(__name__)

MENU_ACTIONS = ('customize', 'resize', 'duplicate', 'delete')

Persist = Callable[[List[StagedEntry], str], None]
Confirm = Callable[[str], Awaitable[bool]]
Customize = Callable[[ElementDescriptor], Awaitable[Optional[ElementChanges]]]


def default_commit_message(entries: List[StagedEntry]) -> str:
    count = len(entries)
    return f"Edit {count} element{'s' if count != 1 else ''}"


class HostOverlayController:
    """
    Args:
        channel: MessageChannel shared with the frame session
        frame: FrameSession to activate when edit mode turns on
        persist: called once per commit with the ordered staged entries and
            the commit message; raises on failure
        confirm: async prompt used before deleting an element
        customize: async dialog returning changes for an element, or None
    """

    def __init__(self, channel: MessageChannel, frame, persist: Persist,
                 confirm: Optional[Confirm] = None, customize: Optional[Customize] = None):
        self._channel = channel
        self._frame = frame
        self._persist = persist
        self._confirm = confirm
        self._customize = customize
        self._edit_mode = False
        self._context_menu: Optional[ShowContextMenu] = None
        self._staging = ChangeStagingStore()
        self._history = ChangeHistory()
        self._on_change: Optional[Callable[[], None]] = None
        self.last_error: Optional[str] = None

    # --- State ---

    @property
    def edit_mode(self) -> bool:
        return self._edit_mode

    @property
    def context_menu(self) -> Optional[ShowContextMenu]:
        return self._context_menu

    @property
    def staged_count(self) -> int:
        return self._staging.count

    @property
    def can_commit(self) -> bool:
        return self._staging.count > 0

    @property
    def staging(self) -> ChangeStagingStore:
        return self._staging

    @property
    def history(self) -> ChangeHistory:
        return self._history

    def set_on_change(self, callback: Callable[[], None]):
        self._on_change = callback

    def _notify_change(self):
        if self._on_change:
            try:
                self._on_change()
            except Exception as e:
                logger.exception(f"Overlay change listener failed: {e}")

    # --- Edit mode ---

    def enable(self) -> bool:
        if self._edit_mode:
            return True
        self._channel.connect_host(self.handle_message)
        try:
            self._frame.activate()
        except Exception as e:
            logger.error(f"Could not start edit mode: {e}")
            self._channel.disconnect_host()
            self.last_error = str(e)
            return False
        self._edit_mode = True
        logger.info("Edit mode on")
        self._notify_change()
        return True

    def disable(self) -> None:
        if not self._edit_mode:
            return
        try:
            self._channel.send_to_frame(Cleanup())
        except ChannelError as e:
            logger.warning(f"Cleanup did not reach the frame: {e}")
        finally:
            self._edit_mode = False
            self._context_menu = None
            self._channel.disconnect_host()
        logger.info(f"Edit mode off ({self._staging.count} change(s) still staged)")
        self._notify_change()

    def toggle_edit_mode(self) -> bool:
        if self._edit_mode:
            self.disable()
        else:
            self.enable()
        return self._edit_mode

    # --- Frame -> host ---

    def handle_message(self, message: FrameMessage) -> None:
        try:
            if isinstance(message, ShowContextMenu):
                if not self._edit_mode:
                    return
                self._context_menu = message
                self._notify_change()
            elif isinstance(message, StageChanges):
                self._stage(message.element_id, message.changes)
            else:
                logger.warning(f"Host ignored unexpected message {type(message).__name__}")
        except Exception as e:
            logger.exception(f"Failed to handle {type(message).__name__}: {e}")

    def _stage(self, element_id: str, changes: ElementChanges) -> None:
        self._staging.stage(element_id, changes)
        self._history.record(element_id, changes, tag=self._frame.tag_name(element_id))
        self._notify_change()

    # --- Host -> frame ---

    def _send(self, message: HostMessage) -> bool:
        try:
            return self._channel.send_to_frame(message)
        except ChannelError as e:
            logger.warning(f"{type(message).__name__} not delivered: {e}")
            self.last_error = str(e)
            return False

    def close_context_menu(self) -> None:
        if self._context_menu is not None:
            self._context_menu = None
            self._notify_change()

    async def run_menu_action(self, action: str) -> bool:
        """Run a context menu action for the element the menu was opened on."""
        menu = self._context_menu
        if menu is None:
            logger.debug(f"Menu action {action} without an open menu")
            return False
        if action not in MENU_ACTIONS:
            logger.warning(f"Unknown menu action {action!r}")
            return False
        self.close_context_menu()
        element_id = menu.element_id

        if action == 'customize':
            if self._customize is None:
                logger.warning("No customize dialog configured")
                return False
            changes = await self._customize(menu.element)
            if changes is None:
                return False
            return self.apply_changes(element_id, changes)

        if action == 'resize':
            return self._send(ArmResize(element_id))

        if action == 'duplicate':
            return self._send(DuplicateElement(element_id))

        # delete
        if self._confirm is None:
            logger.warning(f"Refusing to delete {element_id} without a confirmation prompt")
            return False
        tag = menu.element.tag_name.lower()
        if not await self._confirm(f"Delete this <{tag}> element?"):
            logger.debug(f"Delete of {element_id} declined")
            return False
        return self._send(DeleteElement(element_id))

    def apply_changes(self, element_id: str, changes: ElementChanges) -> bool:
        """Apply changes to the live element and stage them."""
        if not self._send(ApplyChanges(element_id, changes)):
            return False
        self._stage(element_id, changes)
        return True

    # --- Commit ---

    def commit(self, message: Optional[str] = None) -> bool:
        """Persist all staged changes once. Staged changes survive a failure."""
        if not self.can_commit:
            logger.info("Nothing staged, commit skipped")
            return False

        entries = self._staging.all()
        message = (message or '').strip() or default_commit_message(entries)
        try:
            self._persist(entries, message)
        except Exception as e:
            logger.error(f"Commit failed, keeping {len(entries)} staged change(s): {e}")
            self.last_error = str(e)
            return False

        self._staging.clear()
        self.last_error = None
        logger.info(f"Committed {len(entries)} change(s): {message}")
        self._notify_change()
        return True
