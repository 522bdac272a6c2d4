"""
Customize Dialog Component

A modal dialog for changing one element of the edited page:
- Text tab (only when the element has text)
- Style / Layout / Border tabs with one input per CSS property
- Presets tab applying a named group of styles at once
"""

from nicegui import ui
from typing import Dict, Optional

from ..overlay.changes import ElementChanges, make_changes
from ..overlay.messages import ElementDescriptor
from ..overlay.presets import PRESET_CATEGORIES, STYLE_FIELDS, presets_by_category

COLOR_PROPERTIES = ('color', 'background-color', 'border-color')


def render_customize_dialog(element: ElementDescriptor) -> 'ui.dialog':
    """
    Create the dialog. Awaiting it yields the ElementChanges to apply, or
    None when the user cancelled.
    """
    original_text = element.text_content
    field_state: Dict[str, object] = {'text': original_text, 'styles': {}}
    styles: Dict[str, str] = field_state['styles']
    style_inputs = {}

    def set_style(prop: str, value):
        value = (value or '').strip()
        if value:
            styles[prop] = value
        else:
            styles.pop(prop, None)

    dialog = ui.dialog()

    with dialog:
        with ui.card().classes('w-[32rem] max-w-full bg-slate-900 border border-slate-700'):
            # Header
            with ui.row().classes('w-full items-center justify-between'):
                with ui.column().classes('gap-0'):
                    ui.label('Customize Element').classes('text-lg font-bold')
                    subtitle = f'<{element.tag_name.lower()}>'
                    if element.class_name:
                        subtitle += f' .{element.class_name.replace(" ", ".")}'
                    ui.label(subtitle).classes('text-xs text-gray-400 font-mono')
                ui.button(icon='close', on_click=lambda: dialog.submit(None)).props('flat round dense color=grey').tooltip('Cancel')

            has_text = bool(original_text.strip())
            with ui.tabs().classes('w-full') as tabs:
                if has_text:
                    ui.tab('Text', icon='text_fields')
                for group in STYLE_FIELDS:
                    ui.tab(group)
                ui.tab('Presets', icon='auto_awesome')

            with ui.tab_panels(tabs, value='Text' if has_text else next(iter(STYLE_FIELDS))).classes('w-full bg-transparent'):
                if has_text:
                    with ui.tab_panel('Text'):
                        text_input = ui.textarea('Text', value=original_text).classes('w-full').props('outlined autogrow')
                        text_input.on_value_change(lambda e: field_state.update({'text': e.value or ''}))

                for group, props in STYLE_FIELDS.items():
                    with ui.tab_panel(group):
                        with ui.grid(columns=2).classes('w-full gap-2'):
                            for prop in props:
                                if prop in COLOR_PROPERTIES:
                                    inp = ui.color_input(label=prop, on_change=lambda e, p=prop: set_style(p, e.value))
                                else:
                                    inp = ui.input(label=prop, on_change=lambda e, p=prop: set_style(p, e.value))
                                style_inputs[prop] = inp.props('outlined dense')

                with ui.tab_panel('Presets'):
                    for category, presets in presets_by_category().items():
                        ui.label(PRESET_CATEGORIES.get(category, category)).classes('text-xs font-bold text-gray-400 mt-2')
                        for preset in presets:
                            def make_handler(p=preset):
                                def handler():
                                    styles.update(p.styles)
                                    for prop, value in p.styles.items():
                                        if prop in style_inputs:
                                            style_inputs[prop].value = value
                                    ui.notify(f'Preset "{p.name}" added', type='info', timeout=1000)
                                return handler

                            with ui.row().classes('w-full items-center justify-between'):
                                with ui.column().classes('gap-0'):
                                    ui.label(preset.name).classes('text-sm')
                                    ui.label(preset.description).classes('text-xs text-gray-500')
                                ui.button('Apply', icon='auto_awesome', on_click=make_handler()).props('flat dense')

            ui.separator().classes('my-2')

            def do_apply():
                text = field_state['text'] if has_text and field_state['text'] != original_text else None
                try:
                    changes = make_changes(text=text, styles=styles)
                except ValueError:
                    ui.notify('Nothing to apply', type='warning')
                    return
                dialog.submit(changes)

            with ui.row().classes('w-full justify-end gap-2'):
                ui.button('Cancel', on_click=lambda: dialog.submit(None)).props('flat color=grey')
                ui.button('Apply', icon='check', color='green', on_click=do_apply)

    return dialog


async def open_customize_dialog(element: ElementDescriptor) -> Optional[ElementChanges]:
    dialog = render_customize_dialog(element)
    try:
        return await dialog
    finally:
        dialog.delete()
