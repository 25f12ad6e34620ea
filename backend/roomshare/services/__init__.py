"""Services Layer — async orchestration over the Protocol collaborators.

Invariants:
    - Services receive an AppContext; they never construct adapters themselves
    - Every external failure surfaces as a RoomShareError subclass

Design Decisions:
    - One service per concern (session, rooms, files, comments, realtime)
"""
