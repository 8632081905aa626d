"""
HTTP binding for ClassPulse (FastAPI)
"""
