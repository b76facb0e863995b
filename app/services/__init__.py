# Services package.
#
# Request-scoped modules expose async functions that take an AsyncSession
# as their first argument, so the router layer controls the transaction
# boundary via the ``get_db`` dependency:
#
#   user_service      — CRUD + name search for User
#   author_service    — CRUD + search for Author
#   category_service  — CRUD + search + ranking for Category
#   news_service      — CRUD + pagination + cache for News
#   comment_service   — CRUD + lookups for Comment; dispatches notifications
#
# The notification subsystem is class-based and owns its own sessions:
#
#   comment_store         — read-only comment queries for background work
#   task_pool             — bounded fire-and-forget asyncio tasks
#   notifier              — delivery interface + simulated transport
#   notification_service  — NotificationDispatcher (author notice, fan-out, bulk, stats)
#   comment_sweeper       — periodic catch-up scan
#   notifications         — process-wide singletons wired from settings
