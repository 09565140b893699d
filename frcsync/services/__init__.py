"""
Services module.

- core: API client, rate limiter and response cache
- frc: FRC Events API transport DTOs and the DTO mapper
- sync: adapter, reconciler and orchestrator
"""
