"""
Services Layer

Pure business logic services that:
- Accept domain inputs (teams, games, pools, or a session where persistence is the point)
- Return domain outputs (dataclasses, dicts)
- Do NOT depend on HTTP request/response objects
- Do NOT mutate data unless explicitly designed to (advancement_service)
"""
