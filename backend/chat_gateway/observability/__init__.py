"""
Observability Package

Provides:
  TracingConfig   — LangSmith initialisation (call once at startup)
  traced          — decorator for timing/logging async upstream calls
"""

from chat_gateway.observability.tracing import TracingConfig, traced

__all__ = ["TracingConfig", "traced"]
