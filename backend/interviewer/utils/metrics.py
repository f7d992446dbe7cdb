# /interviewer/utils/metrics.py

from prometheus_client import Counter, Histogram

# This file defines all Prometheus metrics used for application monitoring.
# Centralizing them here makes them easy to find and manage.

# Interview Metrics
sessions_counter = Counter('interview_sessions_total', 'Interview sessions by lifecycle event', ['event'])
answers_counter = Counter('interview_answers_total', 'Submitted answers', ['status'])
follow_ups_counter = Counter('interview_follow_ups_total', 'Generated follow-up questions', ['rule'])
guide_versions_counter = Counter('guide_versions_total', 'Guide version operations', ['operation'])

# Dependency Metrics
ai_requests_counter = Counter('ai_requests_total', 'Total AI requests', ['model', 'status'])
database_operations_counter = Counter('database_operations_total', 'Database operations', ['operation', 'status'])

# Performance Metrics
response_time_histogram = Histogram('response_time_seconds', 'Response time in seconds', ['endpoint'])
