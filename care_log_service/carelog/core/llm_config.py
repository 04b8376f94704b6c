import os

from carelog.core.env import load_env

load_env()

# "ollama" (local) or "hf" (Hugging Face Inference Providers)
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "ollama").strip().lower()

OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434/api")
OLLAMA_MODEL_EXTRACT = os.getenv("OLLAMA_MODEL_EXTRACT", "llama3.2")
OLLAMA_MODEL_CHAT = os.getenv("OLLAMA_MODEL_CHAT", "llama3.2")

OLLAMA_TEMPERATURE = float(os.getenv("OLLAMA_TEMPERATURE", "0.1"))
OLLAMA_TIMEOUT_S = int(os.getenv("OLLAMA_TIMEOUT_S", "90"))

HF_MODEL_EXTRACT = os.getenv("HF_MODEL_EXTRACT", "Qwen/Qwen2.5-7B-Instruct")
HF_MODEL_CHAT = os.getenv("HF_MODEL_CHAT", "Qwen/Qwen2.5-7B-Instruct")
HF_TEMPERATURE = float(os.getenv("HF_TEMPERATURE", "0.1"))
HF_MAX_TOKENS = int(os.getenv("HF_MAX_TOKENS", "1024"))
HF_TIMEOUT_S = int(os.getenv("HF_TIMEOUT_S", "90"))

USE_FALLBACK_EXTRACTION = os.getenv("USE_FALLBACK_EXTRACTION", "true").lower() == "true"
