"""
Study notes pages: the list at /notes and the read-only shared view
at /notes/shared/{token}.
"""

import logging

from nicegui import ui, run

from devdash.notes import (
    CATEGORY_LABELS,
    DEFAULT_CATEGORY,
    NotesService,
    NoteValidationError,
    filter_notes,
)
from devdash.storage.protocol import StorageError
from devdash.ui_common import confirm_dialog, notify, render_back_link

logger = logging.getLogger(__name__)


def _format_date(created_at) -> str:
    return (created_at or '')[:10]


def _show_auth_dialog(session, on_success):
    """Email/password sign-in with a switch to sign-up."""
    mode = {'value': 'login'}

    with ui.dialog() as dialog, ui.card().classes('bg-gray-800 text-white w-96'):
        title = ui.label('Sign in').classes('text-2xl font-bold')
        email = ui.input('Email').props('dark filled type=email').classes('w-full')
        password = ui.input('Password', password=True).props('dark filled').classes('w-full')

        async def submit():
            if mode['value'] == 'login':
                result = session.login(email.value, password.value)
            else:
                result = session.sign_up(email.value, password.value)
            if not result['success']:
                notify(f"Authentication failed: {result['error']}", 'negative')
                return
            if mode['value'] == 'login':
                notify('Signed in!', 'positive')
            else:
                notify('Account created! Check your inbox to confirm it.', 'positive')
            dialog.close()
            await on_success()

        def switch_mode():
            mode['value'] = 'signup' if mode['value'] == 'login' else 'login'
            is_login = mode['value'] == 'login'
            title.text = 'Sign in' if is_login else 'Sign up'
            submit_btn.text = 'Sign in' if is_login else 'Sign up'
            switch_btn.text = 'No account yet? Sign up' if is_login else 'Already registered? Sign in'

        password.on('keydown.enter', submit)
        submit_btn = ui.button('Sign in', on_click=submit).props('color=primary').classes('w-full')
        switch_btn = ui.button('No account yet? Sign up', on_click=switch_mode).props('flat').classes('w-full')

    dialog.open()


def register(ctx):

    @ui.page('/notes')
    async def notes_page(client):
        ui.query('body').classes('bg-gray-900 text-white')
        state = {'notes': [], 'show_form': False}

        def service() -> NotesService:
            return NotesService(ctx.viewer_backend(), ctx.viewer(), io_bound=run.io_bound)

        async def fetch_notes():
            try:
                state['notes'] = await run.io_bound(service().fetch_notes)
            except StorageError as e:
                notify(f'Failed to load notes: {e}', 'negative')
                return
            note_list.refresh()

        async def add_note():
            try:
                await run.io_bound(service().add_note, title_input.value, content_input.value, category_select.value)
            except NoteValidationError as e:
                notify(str(e), 'warning')
                return
            except StorageError as e:
                notify(f'Failed to add note: {e}', 'negative')
                return
            title_input.value = ''
            content_input.value = ''
            category_select.value = DEFAULT_CATEGORY
            toggle_form(False)
            notify('Note added!', 'positive')
            await fetch_notes()

        async def delete_note(note):
            try:
                deleted = await service().delete_note(note, confirm_dialog)
            except (StorageError, PermissionError) as e:
                notify(f'Failed to delete note: {e}', 'negative')
                return
            if deleted:
                notify('Note deleted!', 'positive')
                await fetch_notes()

        async def toggle_share(note):
            try:
                note = await run.io_bound(service().toggle_share, note)
            except (StorageError, PermissionError) as e:
                notify(f'Failed to update sharing: {e}', 'negative')
                return
            notify('Sharing enabled' if note.is_shared else 'Sharing disabled', 'positive')
            await fetch_notes()

        async def copy_share_link(note):
            path = NotesService.share_path(note)
            if not path:
                return
            origin = await ui.run_javascript('window.location.origin')
            ui.clipboard.write(f'{origin}{path}')
            notify('Share link copied!', 'positive')

        async def logout():
            ctx.session.logout()
            notify('Signed out', 'info')
            auth_bar.refresh()
            await fetch_notes()

        async def after_login():
            auth_bar.refresh()
            await fetch_notes()

        def toggle_form(show=None):
            state['show_form'] = (not state['show_form']) if show is None else show
            form_card.set_visibility(state['show_form'])
            form_toggle.text = 'Cancel' if state['show_form'] else '+ Add note'

        with ui.column().classes('w-full max-w-4xl mx-auto p-6 gap-4'):
            with ui.row().classes('w-full justify-between items-center'):
                render_back_link()

                @ui.refreshable
                def auth_bar():
                    if not ctx.auth_enabled:
                        return
                    user = ctx.session.get_current_user()
                    with ui.row().classes('items-center gap-2'):
                        if user:
                            ui.label(user.get('email', '')).classes('text-sm text-gray-400')
                            ui.button('Sign out', on_click=logout).props('flat dense')
                        else:
                            ui.button('Sign in', on_click=lambda: _show_auth_dialog(ctx.session, after_login)) \
                                .props('flat dense')

                auth_bar()

            with ui.row().classes('w-full justify-between items-center'):
                ui.label('📚 Study notes').classes('text-3xl font-bold')
                form_toggle = ui.button('+ Add note', on_click=lambda: toggle_form()).props('color=primary')

            search = ui.input(placeholder='🔍 Search title, content or category...') \
                .props('dark filled clearable').classes('w-full')
            search.on_value_change(lambda: note_list.refresh())

            with ui.card().classes('w-full bg-gray-800 text-white p-6') as form_card:
                ui.label('New note').classes('text-xl font-bold')
                title_input = ui.input(placeholder='Title (e.g. How useEffect works)') \
                    .props('dark filled').classes('w-full')
                category_select = ui.select(CATEGORY_LABELS, value=DEFAULT_CATEGORY) \
                    .props('dark filled').classes('w-full')
                content_input = ui.textarea(placeholder='Note...').props('dark filled rows=8').classes('w-full')
                ui.button('Add', on_click=add_note).props('color=primary')
            form_card.set_visibility(False)

            @ui.refreshable
            def note_list():
                query = search.value or ''
                notes = filter_notes(state['notes'], query)
                current = NotesService(ctx.backend, ctx.viewer())

                if query:
                    ui.label(f'{len(notes)} notes found').classes('text-sm text-gray-400')
                if not notes:
                    empty = 'No matching notes.' if query else 'No notes yet. Use "+ Add note" to write one.'
                    ui.label(empty).classes('text-gray-400 w-full text-center py-8')
                    return

                for note in notes:
                    with ui.card().classes('w-full bg-gray-800 text-white p-6'):
                        with ui.row().classes('w-full justify-between items-start'):
                            ui.label(note.title).classes('text-xl font-bold')
                            with ui.row().classes('gap-2 items-center'):
                                if note.is_shared:
                                    ui.badge('🔗 Shared').props('color=purple')
                                ui.badge(CATEGORY_LABELS.get(note.category, note.category)).props('color=primary')
                        ui.label(note.content).classes('text-gray-300 whitespace-pre-wrap')
                        with ui.row().classes('w-full justify-between items-center'):
                            ui.label(_format_date(note.created_at)).classes('text-sm text-gray-500')
                            if current.can_manage(note):
                                with ui.row().classes('gap-2'):
                                    if NotesService.share_path(note):
                                        ui.button('📋 Link', on_click=lambda n=note: copy_share_link(n)) \
                                            .props('dense color=purple')
                                    ui.button('🔒 Unshare' if note.is_shared else '🔓 Share',
                                              on_click=lambda n=note: toggle_share(n)) \
                                        .props('dense color=warning')
                                    ui.button('Delete', on_click=lambda n=note: delete_note(n)) \
                                        .props('dense color=negative')
                            elif note.is_shared:
                                ui.label('Shared note').classes('text-xs text-gray-400')

            note_list()

        await client.connected()
        await fetch_notes()

    @ui.page('/notes/shared/{token}')
    async def shared_note_page(token: str):
        ui.query('body').classes('bg-gray-900 text-white')
        service = NotesService(ctx.backend)

        with ui.column().classes('w-full max-w-4xl mx-auto p-6 gap-6'):
            render_back_link('/notes', '← Back to notes')
            try:
                note = await run.io_bound(service.get_shared_note, token)
            except StorageError as e:
                logger.error(f"Failed to load shared note: {e}")
                note = None

            if note is None:
                with ui.card().classes('w-full bg-red-700 text-white p-6'):
                    ui.label('Error').classes('text-xl font-bold')
                    ui.label('Shared note not found')
                return

            with ui.card().classes('w-full bg-gray-800 text-white p-6'):
                with ui.row().classes('w-full justify-between items-start'):
                    ui.label(note.title).classes('text-3xl font-bold')
                    with ui.row().classes('gap-2 items-center'):
                        ui.badge('🔗 Shared note').props('color=purple')
                        ui.badge(CATEGORY_LABELS.get(note.category, note.category)).props('color=primary')
                ui.label(note.content).classes('text-gray-300 whitespace-pre-wrap my-4')
                ui.separator()
                ui.label(f'Created: {_format_date(note.created_at)}').classes('text-sm text-gray-500')
