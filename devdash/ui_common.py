from nicegui import ui


async def confirm_dialog(message: str, ok_label: str = 'Delete') -> bool:
    """
    Show a yes/no dialog and wait for the answer.
    Closing the dialog without choosing counts as "no".
    """
    with ui.dialog() as dialog, ui.card().classes('bg-slate-800 text-white'):
        ui.label(message).classes('text-base')
        with ui.row().classes('w-full justify-end gap-2 mt-2'):
            ui.button('Cancel', on_click=lambda: dialog.submit(False)).props('flat')
            ui.button(ok_label, on_click=lambda: dialog.submit(True)).props('color=negative')

    result = await dialog
    dialog.clear()
    return bool(result)


def notify(message: str, kind: str = 'info') -> None:
    """
    Transient notification. Errors stay until dismissed.
    kind: 'positive' | 'negative' | 'warning' | 'info'
    """
    if kind == 'negative':
        ui.notify(message, type='negative', timeout=0, close_button=True, position='bottom-right')
    else:
        ui.notify(message, type=kind, position='bottom-right')


def render_back_link(target: str = '/', text: str = '← Home'):
    ui.link(text, target).classes('text-blue-400 hover:underline no-underline')
