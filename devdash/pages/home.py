from nicegui import ui

FEATURES = [
    ('/snippets', '📝 Snippets', 'Keep the code you reach for most'),
    ('/ideas', '💡 Ideas', 'Map out app ideas and how they connect'),
    ('/notes', '📚 Study notes', 'Write down what you learned'),
]


def register(ctx):

    @ui.page('/')
    def home_page():
        ui.query('body').classes('bg-gray-900 text-white')

        with ui.header().classes('bg-gray-900 border-b border-gray-800 px-6 py-4 column items-start'):
            ui.label('DevDash').classes('text-3xl font-bold')
            ui.label('A dashboard for developers').classes('text-gray-400')

        with ui.row().classes('p-6 gap-6 w-full max-w-6xl'):
            for target, title, blurb in FEATURES:
                with ui.link(target=target).classes('no-underline text-white flex-1 min-w-[250px]'):
                    with ui.card().classes('bg-gray-800 hover:bg-gray-700 p-6 w-full cursor-pointer'):
                        ui.label(title).classes('text-2xl font-bold mb-2')
                        ui.label(blurb).classes('text-gray-400')
