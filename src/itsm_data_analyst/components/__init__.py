"""
Component handlers for LLM tool output.

A handler turns the arguments of one tool call into a ComponentRenderPayload
the chat surface can render. Charting is the only component so far.

Usage::

    from itsm_data_analyst.components.chart.handler import ChartComponentHandler

    handler = ChartComponentHandler()
    payload = await handler.process(chart_data)
"""
