"""
Timeline Events Services Package - LLM event generation and recovery

Services for turning LLM output into dated timeline events.

Core Services:
- event_generator: Batched LLM event generation and response assembly
- year_resolver: BC/AD era resolution for generated years
- event_normalizer: Record validation, numbered fallback, date presentation
- llm_service & llm_interface: Multi-provider LLM abstraction and management
"""
