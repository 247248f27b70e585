"""
Unit tests for Persuader.

Test individual components in isolation:
- Validation stages, schema adapters, suggestions and feedback wording
- Prompt builder and Ollama adapter (httpx mock transport)
- Retry primitive, retry controller and enhancement rounds
- Session store, metrics recorder and coordinator
- Configuration processor and orchestrator
"""
