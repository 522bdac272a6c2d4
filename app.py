"""
Main NiceGUI application for PAGESMITH.
Lists the pages of the sites directory, embeds the selected page in an
iframe and lets it be edited in place: hover to highlight, click for the
context menu, double-click to edit text, drag a handle to resize. Staged
edits are committed back to the page file and recorded in git.
"""

from nicegui import ui, app
import logging
import sys

from dotenv import load_dotenv
load_dotenv()

# Path and config initialization
from src.config import get_auto_push, get_port, get_sites_path, get_trusted_origins, set_auto_push
from src.paths import ensure_sites_dir

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)

PORT = get_port()
TRUSTED_ORIGINS = get_trusted_origins(PORT)

# Ensure required directories exist on startup
SITES_DIR = ensure_sites_dir(get_sites_path())

# Global Styles
ui.add_head_html('''
    <style>
        ::-webkit-scrollbar {
            width: 8px;
            height: 8px;
        }
        ::-webkit-scrollbar-track {
            background: transparent;
        }
        ::-webkit-scrollbar-thumb {
            background: #475569; /* slate-600 */
            border-radius: 9999px;
        }
        .pagesmith-frame {
            width: 100%;
            height: calc(100vh - 88px);
            border: 0;
            background: #ffffff;
        }
    </style>
''', shared=True)

from src.page_manager import create_page, ensure_site_repo, list_pages, load_page
from src.page_store import PageStore
from src.overlay import (
    FrameSession,
    HostOverlayController,
    MessageChannel,
    NiceGuiFrameBridge,
    host_relay_html,
    setup_overlay_handlers,
)
from src.components import ask_commit_message, ask_confirmation, open_customize_dialog

git_manager = ensure_site_repo(SITES_DIR)
page_store = PageStore(git_manager, SITES_DIR, auto_push=get_auto_push())
for issue in git_manager.validate_setup()["issues"]:
    logger.info(f"Sites repository: {issue}")

if not list_pages(SITES_DIR):
    create_page('index', title='Welcome', sites_dir=SITES_DIR, git_manager=git_manager)

MENU_ITEMS = [
    ('customize', 'tune', 'Customize'),
    ('resize', 'open_in_full', 'Resize'),
    ('duplicate', 'content_copy', 'Duplicate'),
    ('delete', 'delete', 'Delete'),
]


@ui.page('/')
def main_page():
    ui.dark_mode().enable()

    available_pages = list_pages(SITES_DIR)
    current_page = app.storage.user.get('active_page')
    if current_page not in available_pages:
        current_page = available_pages[0] if available_pages else None

    state = {
        'page': current_page,
        'session': None,
        'host': None,
    }

    # Frame -> host relay (origin checked before anything reaches Python)
    ui.add_body_html(host_relay_html(TRUSTED_ORIGINS))

    # --- Layout references, filled in below ---
    refs = {}

    def refresh_toolbar():
        host = state.get('host')
        editing = bool(host and host.edit_mode)
        count = host.staged_count if host else 0
        refs['edit_btn'].text = 'Done' if editing else 'Edit'
        refs['edit_btn'].props(f'color={"positive" if editing else "primary"}')
        refs['badge'].text = str(count)
        refs['badge'].set_visibility(count > 0)
        refs['commit_btn'].set_enabled(count > 0)
        history_panel.refresh()

    def render_context_menu(menu):
        card = refs['menu_card']
        card.clear()
        if menu is None:
            card.set_visibility(False)
            return
        x, y = menu.position
        card.style(f'left: {x}px; top: {y}px')
        with card:
            with ui.row().classes('w-full items-center justify-between gap-4'):
                ui.label(f'<{menu.element.tag_name.lower()}>').classes('text-xs font-mono text-gray-400')
                ui.button(icon='close', on_click=lambda: state['host'].close_context_menu()).props('flat round dense size=sm color=grey')
            for action, icon, label in MENU_ITEMS:
                ui.button(label, icon=icon, on_click=lambda a=action: handlers['menu_action'](a)).props(
                    f'flat dense align=left {"color=negative" if action == "delete" else ""}'
                ).classes('w-full')
        card.set_visibility(True)

    handlers = setup_overlay_handlers(
        state,
        refresh_toolbar=refresh_toolbar,
        render_context_menu=render_context_menu,
        ask_commit_message=ask_commit_message,
        on_committed=lambda: history_panel.refresh(),
    )

    def persist(entries, message):
        page_store.commit(state['page'], entries, state['session'].serialize(), message)

    def load_current_page():
        frame = refs['frame']
        if not state['page']:
            frame._props['srcdoc'] = '<p style="font-family: sans-serif">No pages yet.</p>'
            frame.update()
            return
        try:
            html = load_page(state['page'], SITES_DIR)
        except OSError as e:
            ui.notify(f'Could not open {state["page"]}: {e}', type='negative')
            return

        channel = MessageChannel(TRUSTED_ORIGINS, host_origin=TRUSTED_ORIGINS[0])
        bridge = NiceGuiFrameBridge(f'c{frame.id}')
        session = FrameSession(html, channel, bridge)
        host = HostOverlayController(
            channel,
            session,
            persist=persist,
            confirm=ask_confirmation,
            customize=open_customize_dialog,
        )
        handlers['bind_host'](host)
        state.update(session=session, host=host)

        frame._props['srcdoc'] = session.srcdoc
        frame.update()
        logger.info(f"Loaded page {state['page']}")

    async def switch_page(page_name):
        if not page_name or page_name == state['page']:
            return
        host = state.get('host')
        if host and host.staged_count:
            discard = await ask_confirmation(
                f'Discard {host.staged_count} staged change(s) on "{state["page"]}"?', 'Discard'
            )
            if not discard:
                refs['page_select'].value = state['page']
                return
        if host:
            host.disable()
        state['page'] = page_name
        app.storage.user['active_page'] = page_name
        load_current_page()
        render_context_menu(None)
        refresh_toolbar()

    def show_create_page_dialog():
        with ui.dialog() as dialog, ui.card().classes('w-80'):
            ui.label('Create Page').classes('text-lg font-bold')
            name_input = ui.input('Page name', placeholder='e.g., about').classes('w-full')
            title_input = ui.input('Title (optional)').classes('w-full')
            error_label = ui.label('').classes('text-red-500 text-sm')

            async def do_create():
                result = create_page(name_input.value, title_input.value, sites_dir=SITES_DIR, git_manager=git_manager)
                if not result['success']:
                    error_label.text = result['message']
                    return
                ui.notify(result['message'], type='positive')
                dialog.close()
                pages = list_pages(SITES_DIR)
                refs['page_select'].set_options(pages)
                refs['page_select'].value = name_input.value.strip().removesuffix('.html')

            with ui.row().classes('w-full justify-end gap-2 mt-4'):
                ui.button('Cancel', on_click=dialog.close).props('flat')
                ui.button('Create Page', on_click=do_create).props('color=primary')
        dialog.open()

    def toggle_auto_push(e):
        page_store.auto_push = bool(e.value)
        set_auto_push(page_store.auto_push)

    # --- History drawer ---
    with ui.right_drawer(value=False).classes('bg-slate-900 border-l border-slate-700') as drawer:
        @ui.refreshable
        def history_panel():
            host = state.get('host')
            ui.label('Staged').classes('text-xs font-bold text-gray-400')
            if host and host.staged_count:
                for entry in host.staging.all():
                    ui.label(entry.element_id).classes('text-xs font-mono')
            else:
                ui.label('No staged changes').classes('text-xs text-gray-500')

            ui.separator().classes('my-2')
            ui.label('This session').classes('text-xs font-bold text-gray-400')
            session_entries = list(reversed(host.history.entries())) if host else []
            if not session_entries:
                ui.label('Nothing edited yet').classes('text-xs text-gray-500')
            for item in session_entries:
                with ui.column().classes('gap-0 w-full'):
                    ui.label(f'{item.timestamp:%H:%M:%S} <{item.tag or "?"}> {item.kind}').classes('text-xs text-gray-300')
                    ui.label(item.summary).classes('text-xs text-gray-500 break-all')

            ui.separator().classes('my-2')
            ui.label('Commits').classes('text-xs font-bold text-gray-400')
            commits = page_store.commit_log(15)
            if not commits:
                ui.label('No commits yet').classes('text-xs text-gray-500')
            for commit in commits:
                with ui.row().classes('gap-2 items-baseline no-wrap'):
                    ui.label(commit['hash'][:7]).classes('text-xs font-mono text-primary')
                    ui.label(commit['message']).classes('text-xs text-gray-300 truncate')

        with ui.column().classes('w-full gap-1'):
            history_panel()

    # --- Toolbar ---
    with ui.row().classes('w-full items-center gap-2 p-3 bg-slate-900 border-b border-slate-700'):
        ui.icon('brush', size='md').classes('text-primary')
        with ui.column().classes('gap-0'):
            ui.label('PAGESMITH').classes('text-lg font-bold leading-none text-white')
            ui.label('Visual page editor').classes('text-xs text-gray-400 leading-none')

        ui.separator().props('vertical')

        refs['page_select'] = ui.select(
            available_pages,
            value=current_page,
            label='Page',
            on_change=lambda e: switch_page(e.value),
        ).props('dense outlined').classes('w-48')
        ui.button(icon='add', on_click=show_create_page_dialog).props('flat dense round color=primary').tooltip('Create New Page')

        ui.separator().props('vertical')

        refs['edit_btn'] = ui.button('Edit', icon='edit', on_click=handlers['toggle_edit_mode']).props('color=primary')

        with ui.button('Commit', icon='save', on_click=handlers['commit_changes']).props('color=accent') as commit_btn:
            refs['badge'] = ui.badge('0', color='red').props('floating').classes('text-xs')
        refs['commit_btn'] = commit_btn

        ui.space()
        ui.switch('Auto push', value=page_store.auto_push, on_change=toggle_auto_push).props('dense color=grey').tooltip('Push to origin after every commit')
        ui.button(icon='history', on_click=drawer.toggle).props('flat dense round color=grey').tooltip('History')

    # --- Embedded page + context menu ---
    with ui.element('div').classes('relative w-full'):
        refs['frame'] = ui.element('iframe').classes('pagesmith-frame')
        refs['menu_card'] = ui.card().classes('absolute z-20 p-2 gap-1 min-w-40 bg-slate-900/95 border border-slate-700 shadow-2xl')
        refs['menu_card'].set_visibility(False)

    load_current_page()
    refresh_toolbar()


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(
        title='PAGESMITH',
        port=PORT,
        reload=not getattr(sys, 'frozen', False),
        storage_secret='pagesmith_secret_key_123',
    )
