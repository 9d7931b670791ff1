import logging

from nicegui import ui, run

from devdash.snippets import LANGUAGE_LABELS, DEFAULT_LANGUAGE, SnippetService
from devdash.storage.protocol import StorageError
from devdash.ui_common import notify, render_back_link

logger = logging.getLogger(__name__)


def register(ctx):

    @ui.page('/snippets')
    async def snippets_page(client):
        ui.query('body').classes('bg-gray-900 text-white')
        service = SnippetService(ctx.backend)
        state = {'snippets': []}

        async def fetch_snippets():
            try:
                state['snippets'] = await run.io_bound(service.list_snippets)
            except StorageError as e:
                notify(f'Failed to load snippets: {e}', 'negative')
                return
            snippet_list.refresh()

        async def add_snippet():
            try:
                snippet = await run.io_bound(
                    service.add_snippet, title_input.value, code_input.value, language_select.value
                )
            except (StorageError, ValueError) as e:
                notify(f'Failed to add snippet: {e}', 'negative')
                return
            if snippet is None:
                return
            title_input.value = ''
            code_input.value = ''
            await fetch_snippets()

        def copy_code(code: str):
            ui.clipboard.write(code)
            notify('Copied!', 'positive')

        with ui.column().classes('w-full max-w-4xl mx-auto p-6 gap-6'):
            with ui.column().classes('gap-2'):
                render_back_link()
                ui.label('📝 Snippets').classes('text-3xl font-bold')

            with ui.card().classes('w-full bg-gray-800 text-white p-6'):
                ui.label('New snippet').classes('text-xl font-bold')
                title_input = ui.input(placeholder='Title (e.g. React useState basics)') \
                    .props('dark filled').classes('w-full')
                language_select = ui.select(LANGUAGE_LABELS, value=DEFAULT_LANGUAGE) \
                    .props('dark filled').classes('w-full')
                code_input = ui.textarea(placeholder='Paste code...') \
                    .props('dark filled rows=6').classes('w-full font-mono')
                ui.button('Add', on_click=add_snippet).props('color=primary')

            @ui.refreshable
            def snippet_list():
                for snippet in state['snippets']:
                    with ui.card().classes('w-full bg-gray-800 text-white p-6'):
                        with ui.row().classes('w-full justify-between items-start'):
                            ui.label(snippet.title).classes('text-xl font-bold')
                            ui.badge(LANGUAGE_LABELS.get(snippet.language, snippet.language)).props('color=grey-8')
                        ui.code(snippet.code, language=snippet.language).classes('w-full')
                        ui.button('Copy', on_click=lambda s=snippet: copy_code(s.code)) \
                            .props('dense color=positive')

            snippet_list()

        await client.connected()
        await fetch_snippets()
