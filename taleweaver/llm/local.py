"""Story text generation with a local Hugging Face causal language model.

:class:`LocalStoryGenerator` loads the model once (Flask keeps a single
instance on the app config) and answers prompts without echoing them back.
4-bit loading is used when ``bitsandbytes`` and a CUDA device are available,
otherwise the model loads in its stored precision.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import torch
from transformers import AutoModelForCausalLM, AutoTokenizer

try:  # ``BitsAndBytesConfig`` requires an optional dependency (bitsandbytes).
    from transformers import BitsAndBytesConfig  # type: ignore
except ImportError:  # pragma: no cover - transformers should always provide this
    BitsAndBytesConfig = None  # type: ignore


LOGGER = logging.getLogger(__name__)


class LocalStoryGenerator:
    def __init__(
        self,
        model_path: str,
        *,
        temperature: Optional[float] = 0.8,
        top_p: Optional[float] = 0.95,
        max_new_tokens: int = 1024,
        seed: int = 42,
        use_4bit: bool = True,
    ):
        self.model_path = model_path
        self.temperature = temperature
        self.top_p = top_p
        self.max_new_tokens = max_new_tokens
        self.use_4bit = use_4bit

        torch.manual_seed(seed)
        if torch.cuda.is_available():
            torch.cuda.manual_seed_all(seed)

        model_kwargs: Dict[str, Any] = {"device_map": "auto", "torch_dtype": "auto"}
        quantization_config = self._quantization_config()
        if quantization_config is not None:
            model_kwargs["quantization_config"] = quantization_config

        LOGGER.info("Loading story model from %s", model_path)
        self.model = AutoModelForCausalLM.from_pretrained(model_path, **model_kwargs)
        self.model.eval()

        self.tokenizer = AutoTokenizer.from_pretrained(model_path)
        if self.tokenizer.pad_token is None:
            self.tokenizer.pad_token = self.tokenizer.eos_token
        self.tokenizer.padding_side = "left"

    def _quantization_config(self) -> Optional[Any]:
        if not self.use_4bit or BitsAndBytesConfig is None:
            return None
        if not torch.cuda.is_available():
            LOGGER.info("CUDA is not available; loading the story model without quantisation.")
            return None
        try:
            import bitsandbytes  # type: ignore  # noqa: F401
        except ImportError:
            LOGGER.info("bitsandbytes not installed; loading the story model without quantisation.")
            return None
        return BitsAndBytesConfig(
            load_in_4bit=True,
            bnb_4bit_use_double_quant=True,
            bnb_4bit_quant_type="nf4",
            bnb_4bit_compute_dtype=torch.float16,
        )

    def generate_response(
        self,
        prompt: str,
        *,
        max_new_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        json_mode: bool = False,
        **extra_parameters: Any,
    ) -> str:
        """Return the model's continuation of ``prompt``.

        ``json_mode`` is accepted for interface parity with the API backend; a
        local model can only be steered towards JSON by the prompt itself.
        """

        tokens = int(self.max_new_tokens if max_new_tokens is None else max_new_tokens)
        if tokens <= 0:
            raise ValueError("max_new_tokens must be a positive integer")

        generation_kwargs: Dict[str, Any] = {
            "max_new_tokens": tokens,
            "do_sample": True,
            "pad_token_id": self.tokenizer.pad_token_id,
        }
        sampled_temperature = self.temperature if temperature is None else temperature
        sampled_top_p = self.top_p if top_p is None else top_p
        if sampled_temperature is not None:
            generation_kwargs["temperature"] = sampled_temperature
        if sampled_top_p is not None:
            generation_kwargs["top_p"] = sampled_top_p
        for key, value in extra_parameters.items():
            if value is not None:
                generation_kwargs[key] = value

        encoded = self.tokenizer(prompt, return_tensors="pt").to(self.model.device)
        with torch.no_grad():
            output = self.model.generate(**encoded, **generation_kwargs)

        prompt_length = encoded["input_ids"].shape[-1]
        generated_ids = output[0, prompt_length:]
        if generated_ids.numel() == 0:
            return ""
        return self.tokenizer.decode(generated_ids, skip_special_tokens=True).strip()
