import json
import logging
import re
from importlib import import_module
from pathlib import Path
from typing import Any

import pydantic
import yaml
from dotenv import load_dotenv

load_dotenv()
from jinja2 import Environment, FileSystemLoader, StrictUndefined
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from tools.parsing import Parsed, ParsedMalformed, parse_output

logger = logging.getLogger(__name__)

PATH_TO_TEMPLATES = Path(__file__).parent / "prompts"

MESSAGE_CLASSES = {
    "system": SystemMessage,
    "user": HumanMessage,
    "assistant": AIMessage,
}

# Supported providers and their LangChain classes
PROVIDER_CLASSES: dict[str, str] = {
    "openai": "langchain_openai.ChatOpenAI",
    "anthropic": "langchain_anthropic.ChatAnthropic",
    "groq": "langchain_groq.ChatGroq",
    "ollama": "langchain_ollama.ChatOllama",
}


def get_model(provider: str, model: str, **kwargs: Any) -> BaseChatModel:
    """Create a LangChain chat model from provider and model name."""
    if provider not in PROVIDER_CLASSES:
        raise ValueError(
            f"Unknown provider: {provider}. Supported: {list(PROVIDER_CLASSES.keys())}"
        )

    module_path, class_name = PROVIDER_CLASSES[provider].rsplit(".", 1)
    module = import_module(module_path)
    model_class = getattr(module, class_name)

    return model_class(model=model, **kwargs)


def custom_tojson(value: Any) -> str:
    """Sanitize and JSON-encode a value for prompt insertion."""
    sanitized = re.sub(r"[^\x20-\x7E]", " ", value) if isinstance(value, str) else value
    return json.dumps(sanitized, ensure_ascii=False)


_ENV = Environment(loader=FileSystemLoader(PATH_TO_TEMPLATES), undefined=StrictUndefined)
_ENV.filters["custom_tojson"] = custom_tojson
_ENV.globals["custom_tojson"] = custom_tojson


def load_prompt(prompt_name: str, **variables: Any) -> list[BaseMessage]:
    """Load a Jinja2 YAML template and render to LangChain messages."""
    template = _ENV.get_template(f"{prompt_name}.yml.j2")
    rendered = template.render(**variables)
    messages_data = yaml.safe_load(rendered)
    return [MESSAGE_CLASSES[m["role"]](content=m["content"]) for m in messages_data]


def message_text(message: Any) -> str:
    """Text content of a chat model response."""
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            part if isinstance(part, str) else str(part.get("text", ""))
            for part in content
        )
    return str(content or "")


class BaseAgent:
    """Base agent class with swappable LLM providers.

    Completions are requested as plain text and parsed defensively into
    `output_schema`, so malformed output surfaces as `ParsedMalformed`
    instead of an exception.
    """
    output_schema: type[pydantic.BaseModel] | None = None  # Subclasses must define this

    def __init__(
        self,
        provider: str,
        model: str,
        prompt_name: str,
        temperature: float = 0.0,
        max_tokens: int = 4096,
        llm: BaseChatModel | None = None,
    ):
        if self.output_schema is None:
            raise TypeError(f"{type(self).__name__} must define `output_schema`")
        self.provider = provider
        self.model_name = model
        self.prompt_name = prompt_name
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.llm = llm or get_model(
            provider,
            model,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    def complete(self, messages: list[BaseMessage]) -> str:
        """Send rendered messages to the model and return its text."""
        return message_text(self.llm.invoke(messages))

    def run_single(self, **variables: Any) -> Parsed:
        """Run the agent with the given input variables."""
        messages = load_prompt(self.prompt_name, **variables)
        return parse_output(self.complete(messages), self.output_schema)

    def run_batch(self, inputs: list[dict[str, Any]], max_concurrency: int = 4) -> list[Parsed]:
        """Run the agent on multiple inputs in parallel; failures stay per input."""
        if not inputs:
            return []
        all_messages = [load_prompt(self.prompt_name, **inp) for inp in inputs]
        responses = self.llm.batch(
            all_messages,
            config={"max_concurrency": max_concurrency},
            return_exceptions=True,
        )
        results: list[Parsed] = []
        for idx, response in enumerate(responses):
            if isinstance(response, Exception):
                logger.warning("%s call %d failed: %s", type(self).__name__, idx, response)
                results.append(
                    ParsedMalformed(raw_text="", reason=f"{type(response).__name__}: {response}")
                )
            else:
                results.append(parse_output(message_text(response), self.output_schema))
        return results
