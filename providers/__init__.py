# =============================================================================
# Double Vision - AI Providers Package
# =============================================================================
# The AI backend adapter and one module per backend: the offline local
# template backend and the OpenAI, Anthropic and Google multimodal chat APIs.
# =============================================================================
