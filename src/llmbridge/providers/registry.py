from __future__ import annotations
from typing import Callable, Dict, Type, Union
from importlib import import_module

from llmbridge.core.models import Target


class ProviderRegistry:
    _classes: Dict[Target, Type] = {}

    @classmethod
    def register(cls, *targets: Union[str, Target]) -> Callable[[Type], Type]:
        keys = [Target.parse(t) for t in targets]
        def deco(klass: Type) -> Type:
            for key in keys:
                cls._classes[key] = klass
            return klass
        return deco

    @classmethod
    def get(cls, target: Union[str, Target]) -> Type:
        try:
            key = Target.parse(target)
        except ValueError:
            raise KeyError(f"Provider '{target}' not registered")
        if key not in cls._classes:
            raise KeyError(f"Provider '{target}' not registered")
        return cls._classes[key]

    @classmethod
    def codec_for(cls, target: Union[str, Target]):
        cls.ensure_imports()
        key = Target.parse(target)
        return cls.get(key)(key)

    @classmethod
    def ensure_imports(cls) -> None:
        """
        Import built-in codecs so their @register decorators run.
        """
        import_module("llmbridge.providers.ollama")
        import_module("llmbridge.providers.openai_compat")
        import_module("llmbridge.providers.claude")
