"""AI Response Gateway Layer.

Produces empathetic reflections, companion replies and mood insights with:
  - Call Rate Limiter (rolling 5-minute / 1-hour budgets)
  - Credential Rotator (circular key rotation with cooldowns)
  - Primary Provider Client (Google Gemini)
  - Secondary Provider Client (OpenAI-compatible model cascade)
  - Response Sanitizer (markdown stripping, length bounds)
  - Contextual Fallback Generator (keyword-matched canned responses)
  - Health Prober (cached, single-flight credential sweeps)
"""
