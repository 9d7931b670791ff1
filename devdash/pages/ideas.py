"""
Idea map page.

The chart is only a rendering surface: every gesture it reports is applied
to the IdeaMapEditor, and the chart is redrawn from the editor's graph.

Gestures:
- click a node, then another node  -> connect them (Esc cancels)
- click a connection               -> delete it (confirmed)
- select mode + click connections  -> mark them; Delete/Backspace removes all marked
- drag a node                      -> position reported back to the editor
"""

import logging

from nicegui import ui, run

from devdash.ideas.editor import IdeaMapEditor
from devdash.ideas.models import DEFAULT_COLOR
from devdash.ideas.surface import (
    POSITIONS_EVENT,
    ConnectGesture,
    EdgeSelection,
    build_chart_options,
    parse_click,
    position_changes_from_payload,
)
from devdash.ui_common import confirm_dialog, notify, render_back_link

logger = logging.getLogger(__name__)

COLOR_OPTIONS = {
    'blue': '🔵 Blue',
    'green': '🟢 Green',
    'red': '🔴 Red',
    'yellow': '🟡 Yellow',
    'purple': '🟣 Purple',
}

HELP_LINES = [
    'Click a node, then another node to connect them',
    'Esc cancels a pending connection',
    'Click a connection to delete it',
    'Select mode: click connections, then press Delete',
    'Drag nodes to arrange them',
    '💾 Save keeps the map for good',
]

# Reports every node's layout position after a drag ends
POSITION_HOOK_JS = '''
(function () {
    const attach = () => {
        const comp = getElement(%(chart_id)d);
        if (!comp || !comp.chart) { setTimeout(attach, 100); return; }
        const chart = comp.chart;
        chart.on('mouseup', (params) => {
            if (params.dataType !== 'node') return;
            const data = chart.getModel().getSeriesByIndex(0).getData();
            const positions = [];
            for (let i = 0; i < data.count(); i++) {
                const layout = data.getItemLayout(i);
                if (layout) positions.push({id: data.getId(i), x: layout[0], y: layout[1]});
            }
            emitEvent('%(event)s', {positions: positions});
        });
    };
    attach();
})();
'''


def register(ctx):

    @ui.page('/ideas')
    async def ideas_page(client):
        ui.query('body').classes('bg-gray-900 text-white')

        editor = IdeaMapEditor(
            ctx.backend,
            confirm=confirm_dialog,
            notify=notify,
            io_bound=run.io_bound,
        )
        connect = ConnectGesture()
        selection = EdgeSelection()
        state = {'select_mode': False, 'editing': set()}

        def refresh():
            if editor.is_closed:
                return
            selection.retain(editor.graph.edge_ids())
            if connect.pending_source not in editor.graph.node_ids():
                connect.cancel()
            chart.options.clear()
            chart.options.update(build_chart_options(
                editor.graph,
                pending_source=connect.pending_source,
                selected_edges=selection.ids,
            ))
            chart.update()
            node_panel.refresh()

        # --- Actions ---

        def add_node():
            node = editor.add_node(label_input.value, color_select.value)
            if node is None:
                return
            label_input.value = ''
            refresh()

        async def save_map():
            await editor.save()

        async def clear_all():
            if await editor.clear_all():
                connect.cancel()
                selection.clear()
                state['editing'].clear()
                refresh()

        async def delete_node(view):
            if await view.delete():
                state['editing'].discard(view.id)
                refresh()

        def save_memo(view, text):
            view.update_memo(text)
            state['editing'].discard(view.id)
            refresh()

        def toggle_memo_edit(node_id):
            state['editing'] ^= {node_id}
            node_panel.refresh()

        def set_select_mode(e):
            state['select_mode'] = bool(e.value)
            if not state['select_mode']:
                selection.clear()
            refresh()

        # --- Surface gestures ---

        async def handle_point_click(e):
            hit = parse_click(e.data_type, e.data)
            if hit is None:
                return
            kind, item_id = hit
            if kind == 'node':
                pair = connect.click_node(item_id)
                if pair:
                    editor.connect(*pair)
                refresh()
            elif state['select_mode']:
                selection.toggle(item_id)
                refresh()
            elif await editor.delete_edge(item_id):
                refresh()

        def handle_positions(e):
            editor.apply_node_changes(position_changes_from_payload(e.args))

        def handle_key(e):
            if not e.action.keydown:
                return
            if e.key.name == 'Escape' and connect.armed:
                connect.cancel()
                refresh()
            elif e.key.name in ('Delete', 'Backspace') and selection.ids:
                removed = editor.delete_edges(selection.ids)
                selection.clear()
                logger.debug(f"Bulk-deleted {removed} connections")
                refresh()

        # --- Layout ---

        with ui.header().classes('bg-gray-800 border-b border-gray-700 px-4 py-3 items-center justify-between'):
            with ui.column().classes('gap-1'):
                render_back_link()
                ui.label('💡 Idea map').classes('text-2xl font-bold')

            with ui.row().classes('items-center gap-3'):
                color_select = ui.select(COLOR_OPTIONS, value=DEFAULT_COLOR).props('dark dense outlined').classes('w-32')
                label_input = ui.input(placeholder='Type an idea...').props('dark dense outlined').classes('w-64')
                label_input.on('keydown.enter', add_node)
                ui.button('Add', on_click=add_node).props('color=primary')
                ui.button('💾 Save', on_click=save_map).props('color=positive')
                ui.button('Clear all', on_click=clear_all).props('color=negative')
                ui.switch('Select mode', on_change=set_select_mode).props('dark')

        with ui.row().classes('w-full no-wrap gap-0').style('height: calc(100vh - 90px)'):
            chart = ui.echart(build_chart_options(editor.graph)).classes('flex-grow h-full')
            chart.on_point_click(handle_point_click)

            with ui.scroll_area().classes('w-80 h-full bg-gray-800 border-l border-gray-700'):

                @ui.refreshable
                def node_panel():
                    views = editor.node_views()
                    if not views:
                        ui.label('No ideas yet.').classes('text-gray-400 p-4')
                        return
                    for view in views:
                        style = view.style
                        with ui.card().classes('w-full text-white mb-2').style(
                            f'border: 2px solid {style["border"]}; background-color: {style["bg"]};'
                        ):
                            ui.label(view.label).classes('font-bold')
                            if view.id in state['editing']:
                                memo_box = ui.textarea(value=view.memo, placeholder='Write a memo...') \
                                    .props('dark filled rows=3').classes('w-full text-sm')
                                ui.button('Save', on_click=lambda v=view, box=memo_box: save_memo(v, box.value)) \
                                    .props('dense color=primary')
                            else:
                                if view.memo:
                                    ui.label(view.memo).classes('text-gray-300 text-sm whitespace-pre-wrap')
                                with ui.row().classes('gap-2'):
                                    ui.button('Edit' if view.memo else 'Add memo',
                                              on_click=lambda v=view: toggle_memo_edit(v.id)) \
                                        .props('dense flat size=sm color=grey-4')
                                    ui.button('Delete', on_click=lambda v=view: delete_node(v)) \
                                        .props('dense size=sm color=negative')

                node_panel()

        with ui.card().classes('absolute bottom-4 left-4 bg-gray-800 text-white text-sm max-w-xs'):
            ui.label('✨ How to use').classes('font-bold')
            for line in HELP_LINES:
                ui.label(f'・{line}').classes('text-gray-300')

        ui.keyboard(on_key=handle_key)
        ui.on(POSITIONS_EVENT, handle_positions)
        editor.bind_to_client(client)

        await client.connected()
        ui.run_javascript(POSITION_HOOK_JS % {'chart_id': chart.id, 'event': POSITIONS_EVENT})

        if await editor.load():
            refresh()
