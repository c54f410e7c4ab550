"""Offline completion backend on a Hugging Face seq2seq model.

Useful for development without API access. The model is either a full model
(hub id or local path) or a PEFT adapter directory produced by fine-tuning.
"""

import logging
from pathlib import Path

from peft import PeftConfig, PeftModel
import torch
from transformers import AutoModelForSeq2SeqLM, AutoTokenizer

from contentgen.completion import CompletionBackend
from contentgen.exceptions import CompletionError
from contentgen.prompting import Prompt

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "google/flan-t5-base"
MAX_INPUT_TOKENS = 2048
# Seq2seq checkpoints cannot emit the API-sized budgets the prompts ask for.
MAX_NEW_TOKENS = 1024

_TEMPLATE_ECHOES = (
    "seo-optimized title for",
    "full html content of",
    "compelling seo-optimized title",
    "tag1",
)


def load_seq2seq(source: str):
    """Return ``(tokenizer, model)`` for a hub id, a model dir, or a PEFT adapter dir."""
    adapter_dir = Path(source)
    if not (adapter_dir / "adapter_config.json").is_file():
        logger.info("Loading seq2seq model %s", source)
        return (
            AutoTokenizer.from_pretrained(source),
            AutoModelForSeq2SeqLM.from_pretrained(source),
        )

    base_name = PeftConfig.from_pretrained(source).base_model_name_or_path
    if not base_name:
        raise CompletionError(f"Adapter at {source} does not name its base model")
    logger.info("Loading adapter %s on top of %s", source, base_name)
    lm = PeftModel.from_pretrained(AutoModelForSeq2SeqLM.from_pretrained(base_name), source)
    return AutoTokenizer.from_pretrained(source), lm


class LocalSeq2SeqBackend(CompletionBackend):
    name = "local"

    def __init__(self, model_name_or_path: str = DEFAULT_MODEL):
        self.model = model_name_or_path
        self.tokenizer, self.lm = load_seq2seq(model_name_or_path)
        self.device = torch.device("cuda" if torch.cuda.is_available() else "cpu")
        self.lm.to(self.device)
        logger.info("Local model ready on %s", self.device)

    def _echoes_template(self, text: str) -> bool:
        lowered = text.lower()
        return any(signal in lowered for signal in _TEMPLATE_ECHOES)

    def _generate(self, text: str, max_new_tokens: int, sample: bool, temperature: float) -> str:
        inputs = self.tokenizer(
            text,
            return_tensors="pt",
            truncation=True,
            max_length=MAX_INPUT_TOKENS,
        ).to(self.device)
        if sample:
            decoding = {"do_sample": True, "temperature": temperature, "top_p": 0.9, "top_k": 50}
        else:
            decoding = {"do_sample": False, "num_beams": 5, "length_penalty": 1.1}

        with torch.no_grad():
            output_ids = self.lm.generate(
                **inputs,
                max_new_tokens=max_new_tokens,
                repetition_penalty=1.2,
                no_repeat_ngram_size=4,
                **decoding,
            )
        return self.tokenizer.decode(output_ids[0], skip_special_tokens=True)

    def complete(self, prompt: Prompt) -> str:
        # No system role in seq2seq models; prepend it to the instruction.
        text = f"{prompt.system}\n\n{prompt.user}"
        max_new_tokens = min(prompt.max_tokens, MAX_NEW_TOKENS)
        temperature = prompt.temperature if prompt.temperature is not None else 0.8

        try:
            decoded = self._generate(text, max_new_tokens, sample=True, temperature=temperature)
            if self._echoes_template(decoded):
                logger.info("Local model echoed the output template; retrying with beam search")
                strict = text + "\n\nFinal reminder: output real content only. Never output placeholders."
                decoded = self._generate(strict, max_new_tokens, sample=False, temperature=temperature)
        except RuntimeError as exc:
            raise CompletionError(f"Local generation failed: {exc}") from exc

        if not decoded.strip():
            raise CompletionError("Local model produced no text")
        return decoded
