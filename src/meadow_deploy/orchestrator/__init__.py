"""Interactive task orchestration for Meadow Cloud deployments.

Provides:
- Settings loaded from .env
- Structured logging
- Cancellable task handles around Meadow CLI processes
- The deployment and maintenance workflows behind the CLI
"""
