"""CLI command modules for workorder-sync.

Each module exposes ``register(app)``:
- stack_commands.py: stack, stack-show, stack-remove, stack-clear
- push_commands.py: push
- maintenance_commands.py: del-dups, delete-month
- shared.py: config/logger loading, console, report rendering
"""
