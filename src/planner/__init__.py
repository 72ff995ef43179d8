"""
Planner backend package.

Tasks and calendar events held by a record store, a pattern-based intent
parser for chat messages, and the FastAPI app serving both.
"""
