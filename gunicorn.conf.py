"""Gunicorn configuration for QuizDrill."""

wsgi_app = "quizdrill.web.app:create_app()"
bind = "0.0.0.0:8000"
workers = 2  # Keep low for SQLite (avoids write contention)
timeout = 120  # Question generation waits on the LLM
accesslog = "-"
errorlog = "-"
loglevel = "info"
