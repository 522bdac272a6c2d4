"""
Small awaitable dialogs: yes/no confirmation and commit message prompt.
"""

from nicegui import ui
from typing import Optional


async def ask_confirmation(text: str, confirm_label: str = 'Delete') -> bool:
    with ui.dialog() as dialog, ui.card().classes('w-80'):
        ui.label(text).classes('text-base')
        with ui.row().classes('w-full justify-end gap-2 mt-4'):
            ui.button('Cancel', on_click=lambda: dialog.submit(False)).props('flat')
            ui.button(confirm_label, on_click=lambda: dialog.submit(True)).props('color=negative')
    try:
        return bool(await dialog)
    finally:
        dialog.delete()


async def ask_commit_message(default: str, staged_count: int) -> Optional[str]:
    """Returns the message, or None when cancelled."""
    with ui.dialog() as dialog, ui.card().classes('w-96'):
        ui.label('Commit Changes').classes('text-lg font-bold')
        ui.label(f'{staged_count} staged change{"s" if staged_count != 1 else ""} will be saved.').classes('text-sm text-gray-400')
        message_input = ui.input('Commit message', value=default).classes('w-full').props('outlined autofocus')
        error_label = ui.label('').classes('text-red-500 text-sm')

        def do_commit():
            message = (message_input.value or '').strip()
            if not message:
                error_label.text = 'A commit message is required'
                return
            dialog.submit(message)

        message_input.on('keydown.enter', do_commit)
        with ui.row().classes('w-full justify-end gap-2 mt-4'):
            ui.button('Cancel', on_click=lambda: dialog.submit(None)).props('flat')
            ui.button('Commit', icon='save', on_click=do_commit).props('color=primary')
    try:
        return await dialog
    finally:
        dialog.delete()
