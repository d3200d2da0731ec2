"""
To-do list with reminders.

Components:
- task_models.py: data structures (Task, ReminderType)
- task_store.py: SQLite gateway (offline mode / tests)
- supabase_gateway.py: remote `todos` table over the supabase client
- reminder_store.py: cached list + write-then-reflect CRUD
- task_scheduler.py: one deferred callback per due push reminder
- notifier.py: permission-gated local notifications
- task_api.py: wiring and display helpers used by the rest of the app
"""
