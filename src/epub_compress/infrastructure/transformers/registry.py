# FILE: src/epub_compress/infrastructure/transformers/registry.py
from typing import Dict, Optional

from ...domain.interfaces import ITransformer
from ...shared.enums import Action
from ...shared.settings import Settings
from .markup import MarkupMinifier
from .raster import RasterOptimizer
from .script import ScriptMinifier
from .style import StyleMinifier
from .vector import VectorMinifier


class TransformerRegistry:
    """処理種別から対応する変換クラスを引くための対応表。"""

    def __init__(self, transformers: Optional[Dict[Action, ITransformer]] = None):
        self._transformers: Dict[Action, ITransformer] = dict(transformers or {})

    @classmethod
    def from_settings(cls, settings: Settings) -> 'TransformerRegistry':
        """設定で有効になっている変換クラスのみを登録した対応表を生成します。"""
        registry = cls()
        if settings.minify.markup:
            registry.register(MarkupMinifier())
        if settings.minify.style:
            registry.register(StyleMinifier())
        if settings.minify.script:
            registry.register(ScriptMinifier())
        if settings.minify.vector:
            registry.register(VectorMinifier())
        if settings.images.enabled:
            registry.register(RasterOptimizer(settings.images))
        return registry

    def register(self, transformer: ITransformer) -> None:
        self._transformers[transformer.action] = transformer

    def get(self, action: Action) -> Optional[ITransformer]:
        return self._transformers.get(action)

    def __contains__(self, action: Action) -> bool:
        return action in self._transformers
