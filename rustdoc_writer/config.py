import os

class Config:
    OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434/api/generate")
    LM_STUDIO_BASE_URL = os.getenv("LM_STUDIO_BASE_URL", "http://localhost:1234/v1")
    DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "qwen2.5-coder:7b-instruct")
    REQUEST_TIMEOUT = float(os.getenv("RUSTDOC_WRITER_TIMEOUT", "120"))
    DOCS_OUTPUT = os.getenv("RUSTDOC_WRITER_DOCS", "target/llm_rustdocs/docs.json")
    LOG_LEVEL = os.getenv("RUSTDOC_WRITER_LOG", "INFO")
