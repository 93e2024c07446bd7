import json
import os
import urllib.request
import logging
from dataclasses import dataclass
from typing import List, Protocol

from finance_ledger.aggregation import category_breakdown_of, sorted_breakdown, totals_of
from finance_ledger.core.models import INCOME, Transaction
from finance_ledger.database import LedgerStore
from huggingface_hub import InferenceClient
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)

_OLLAMA_URL = "http://localhost:11434/api/chat"
_OPENAI_URL = "https://api.openai.com/v1/chat/completions"

EMPTY_LEDGER_MESSAGE = "No transactions to analyze. Add a few records first."
RECENT_RECORDS = 5


class LLMProvider(Protocol):
    """A minimal protocol all concrete providers must implement."""

    def generate(self, messages: List[dict]) -> str:  # noqa: D401 – keep simple signature
        """Return the model reply given a list-of-dicts chat history."""


@dataclass
class LLMClient:
    """Simple client that delegates chat requests to an LLM provider."""
    provider: LLMProvider | None = None

    def __post_init__(self) -> None:
        if self.provider is None:
            self.provider = get_provider_from_env()

    def chat(self, messages: List[dict]) -> str:
        return self.provider.generate(messages)


# -----------------------------------------------------------------------------
# Hugging Face Inference API provider
# -----------------------------------------------------------------------------

@dataclass
class HuggingFaceProvider:
    model: str
    token: str | None = None

    def __post_init__(self) -> None:
        self._client = InferenceClient(api_key=self.token)

    def generate(self, messages: List[dict]) -> str:
        out = self._client.chat_completion(messages=messages, model=self.model)
        return out.choices[0].message.content.strip()


# -----------------------------------------------------------------------------
# OpenAI Chat Completions provider
# -----------------------------------------------------------------------------

@dataclass
class OpenAIProvider:
    model: str
    api_key: str
    url: str = _OPENAI_URL

    def generate(self, messages: List[dict]) -> str:
        payload = {"model": self.model, "messages": messages}
        data = json.dumps(payload).encode()
        req = urllib.request.Request(self.url, data=data, method="POST")
        req.add_header("Content-Type", "application/json")
        req.add_header("Authorization", f"Bearer {self.api_key}")
        with urllib.request.urlopen(req) as resp:
            resp_data = json.load(resp)
        return resp_data["choices"][0]["message"]["content"].strip()


# -----------------------------------------------------------------------------
# Ollama provider
# -----------------------------------------------------------------------------

@dataclass
class OllamaProvider:
    model: str
    url: str = _OLLAMA_URL

    def _post(self, payload: dict) -> dict:
        data = json.dumps(payload).encode()
        logger.debug("Ollama POST %s payload: %s", self.url, payload)
        req = urllib.request.Request(self.url, data=data, method="POST")
        req.add_header("Content-Type", "application/json")

        with urllib.request.urlopen(req) as resp:
            raw = resp.read().decode()
            logger.debug("Ollama reply %s", raw)
            return json.loads(raw)

    def generate(self, messages: List[dict]) -> str:
        payload = {"model": self.model, "messages": messages, "stream": False}
        resp_data = self._post(payload)

        # /api/chat answers with either a plain string or a message object
        msg = resp_data.get("message", "")
        if isinstance(msg, dict):
            msg = msg.get("content", "")
        if not isinstance(msg, str):
            raise RuntimeError(f"Unexpected Ollama response format: {resp_data}")
        return msg.strip()


def get_provider_from_env() -> LLMProvider:
    provider = os.environ.get("LEDGERLY_LLM_PROVIDER", "huggingface").lower()

    if provider == "openai":
        api_key = os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY not set")
        model = os.environ.get("LEDGERLY_LLM_MODEL", "gpt-4o-mini")
        return OpenAIProvider(model=model, api_key=api_key)

    if provider == "ollama":
        model = os.environ.get("LEDGERLY_LLM_MODEL", "phi3:mini")
        url = os.environ.get("OLLAMA_URL", _OLLAMA_URL)
        return OllamaProvider(model=model, url=url)

    token = os.environ.get("HF_API_TOKEN")
    model = os.environ.get("LEDGERLY_LLM_MODEL", "Qwen/Qwen3-32B")
    return HuggingFaceProvider(model=model, token=token)


# -----------------------------------------------------------------------------
# Prompt building
# -----------------------------------------------------------------------------

def _tx_to_line(tx: Transaction) -> str:
    kind = "income" if tx.type == INCOME else "expense"
    line = f"{tx.date} {kind} {tx.amount:.2f} ({tx.category}"
    if tx.description:
        line += f": {tx.description}"
    return line + ")"


class BaseAIOutput(ABC):
    """Composable layer for building prompts and parsing LLM responses."""

    @abstractmethod
    def build_messages(self, records: List[Transaction]) -> List[dict]:
        """Return chat messages describing the task."""

    def post_process(self, response: str) -> str:
        return response.strip()

    def generate(self, store: LedgerStore, client: LLMClient | None = None) -> str:
        # One read; every figure in the prompt comes from this snapshot.
        records = store.list()
        if not records:
            return EMPTY_LEDGER_MESSAGE
        messages = self.build_messages(records)
        try:
            client = client or LLMClient()
            out = client.chat(messages)
        except Exception as e:
            logger.warning("LLM request failed: %s", e)
            return f"Error contacting LLM: {e}"
        return self.post_process(out)


class AdviceReport(BaseAIOutput):
    """Savings advice grounded in the ledger's totals and recent activity."""

    def build_messages(self, records: List[Transaction]) -> List[dict]:
        summary = totals_of(records)
        breakdown = sorted_breakdown(category_breakdown_of(records))
        recent = records[:RECENT_RECORDS]

        categories = ", ".join(f"{name}: {amount:.2f}" for name, amount in breakdown) or "none"
        lines = [
            f"Current balance: {summary.balance:.2f}",
            f"Total income: {summary.total_income:.2f}",
            f"Total expense: {summary.total_expense:.2f}",
            f"Expenses by category: {categories}",
            "Recent records:",
            *(_tx_to_line(tx) for tx in recent),
        ]
        return [
            {
                "role": "system",
                "content": (
                    "You are a personal finance advisor. Based on the user's data, give 3-5 "
                    "specific, actionable suggestions for saving money. Refer to their actual "
                    "spending, keep an encouraging tone and answer in Markdown."
                ),
            },
            {"role": "user", "content": "\n".join(lines)},
        ]


def generate_advice(store: LedgerStore, provider: LLMProvider | None = None) -> str:
    """Convenience wrapper returning savings advice for the ledger.

    Without *provider* the one named by the environment is used; a missing
    or misconfigured provider comes back as an error message, like any other
    LLM failure.
    """
    client = LLMClient(provider) if provider is not None else None
    return AdviceReport().generate(store, client)
