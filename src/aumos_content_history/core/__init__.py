"""Core domain logic: populate planning, interception, redaction and services.

Modules:
- schema: content type schema model and a dict-backed registry
- populate: schema-driven populate plans with cycle cutting
- redaction: omit-set removal at every depth
- pipeline: document operation middleware chain
- interceptor: history capture around each mutation
- services: AuditRecorder, RestoreService, ScheduledTaskService
"""
