# FILE: src/epub_compress/infrastructure/transformers/markup.py
import re
from typing import Optional

from loguru import logger
from lxml import etree

from ...models.local import Entry
from ...shared.constants import (
    BLOCK_LEVEL_TAGS,
    BOOLEAN_ATTRIBUTES,
    EMPTY_REMOVABLE_ATTRIBUTES,
    FOREIGN_INLINE_TAGS,
    NAMESPACES,
    REDUNDANT_ATTRIBUTES,
    SCRIPT_TYPES,
    VOID_TAGS,
    WHITESPACE_PRESERVING_TAGS,
)
from ...shared.enums import Action
from ...shared.exceptions import MarkupMinifyError, TransformError
from .base import BaseTransformer
from .script import minify_js
from .style import minify_css

# HTMLにおける空白文字。U+00A0 (&nbsp;) などは含まない。
_HTML_WHITESPACE = ' \t\n\r\f'
_WHITESPACE_RUN_PATTERN = re.compile(f'[{_HTML_WHITESPACE}]+')
_XML_SPACE_ATTRIBUTE = f'{{{NAMESPACES.XML}}}space'
_COMMENT_PLACEHOLDER_TAG = 'epub-compress-kept-comment'

# HTMLとしても読まれる拡張子。XMLとして解析できない場合はHTMLパーサーで再解析する
HTML_EXTENSIONS = frozenset({'.html', '.htm'})


def _xml_parser() -> etree.XMLParser:
    return etree.XMLParser(
        resolve_entities=False,
        strip_cdata=False,
        remove_blank_text=False,
        remove_comments=False,
        load_dtd=False,
        no_network=True,
        huge_tree=True,
    )


def _html_parser() -> etree.HTMLParser:
    return etree.HTMLParser(
        encoding='utf-8', remove_blank_text=False, remove_comments=False
    )


def _collapse(text: Optional[str], droppable: bool) -> Optional[str]:
    """連続する空白を1文字にまとめます。空白のみのテキストは削除可能な位置なら削除します。"""
    if not text:
        return text
    if not text.strip(_HTML_WHITESPACE):
        return None if droppable else ' '
    return _WHITESPACE_RUN_PATTERN.sub(' ', text)


class _DocumentMinifier:
    """解析済みの単一ドキュメントに対して圧縮処理を適用するヘルパー。"""

    def __init__(
        self, tree: etree._ElementTree, method: str, html_compatible: bool = False
    ):
        self.tree = tree
        self.method = method
        self.html_compatible = html_compatible
        root = tree.getroot()
        root_name = etree.QName(root)
        self.html_namespaces: set[Optional[str]] = {NAMESPACES.XHTML}
        if method == 'html' or (
            root_name.namespace is None and root_name.localname == 'html'
        ):
            self.html_namespaces.add(None)
        # XHTML 1.x のDTDでは script/style の type 属性が必須
        public_id = tree.docinfo.public_id or ''
        self.keep_type_attributes = 'XHTML 1' in public_id

    def minify(self) -> None:
        root = self.tree.getroot()
        self._remove_comments()
        self._minify_element(root, preserve=False)
        if self.method == 'xml':
            self._keep_explicit_end_tags(root)

    # --- 要素の判定 ---

    def _html_localname(self, node: etree._Element) -> Optional[str]:
        """HTML要素であればローカル名を返し、それ以外はNoneを返します。"""
        if not isinstance(node.tag, str):
            return None
        name = etree.QName(node)
        if name.namespace in self.html_namespaces:
            return name.localname.lower()
        return None

    def _is_block(self, node: etree._Element) -> bool:
        if not isinstance(node.tag, str):
            # 処理命令は表示されないためブロック扱い、実体参照はテキストとして扱う
            return node.tag is not etree.Entity
        local = self._html_localname(node)
        if local is not None:
            return local in BLOCK_LEVEL_TAGS
        return etree.QName(node).localname not in FOREIGN_INLINE_TAGS

    def _preserves_whitespace(self, element: etree._Element) -> bool:
        if element.get(_XML_SPACE_ATTRIBUTE) == 'preserve':
            return True
        return self._html_localname(element) in WHITESPACE_PRESERVING_TAGS

    # --- 各処理 ---

    def _remove_comments(self) -> None:
        """
        ルート要素の前後を含む全てのコメントを削除します。
        古いXHTMLでは <style><!-- ... --></style> の形でCSSを記述している場合があるため、
        script/style 直下のコメントは一時的に退避して保持します。
        """
        kept: list[tuple[etree._Element, etree._Element]] = []
        for comment in list(self.tree.getroot().iter(etree.Comment)):
            parent = comment.getparent()
            if parent is not None and self._html_localname(parent) in ('script', 'style'):
                placeholder = etree.Element(_COMMENT_PLACEHOLDER_TAG)
                parent.replace(comment, placeholder)
                kept.append((placeholder, comment))

        # ElementTree を渡すとルート要素の前後にあるコメントも対象になる
        etree.strip_elements(self.tree, etree.Comment, with_tail=False)

        for placeholder, comment in kept:
            placeholder.getparent().replace(placeholder, comment)

    def _minify_element(self, element: etree._Element, preserve: bool) -> None:
        local = self._html_localname(element)
        if local is not None:
            self._clean_attributes(element, local)
            if local == 'style':
                self._minify_embedded(element, minify_css, self._is_css(element))
            elif local == 'script':
                self._minify_embedded(element, minify_js, self._is_javascript(element))

        preserve = preserve or self._preserves_whitespace(element)
        children = list(element)
        if not preserve:
            first = children[0] if children else None
            element.text = _collapse(
                element.text,
                self._is_block(element)
                and (first is None or self._is_block(first)),
            )
            for index, child in enumerate(children):
                following = children[index + 1] if index + 1 < len(children) else None
                right_is_block = (
                    self._is_block(following)
                    if following is not None
                    else self._is_block(element)
                )
                child.tail = _collapse(
                    child.tail, self._is_block(child) and right_is_block
                )

        for child in children:
            if isinstance(child.tag, str):
                self._minify_element(child, preserve)

    def _clean_attributes(self, element: etree._Element, local: str) -> None:
        attributes = element.attrib
        for name in list(attributes):
            if not isinstance(name, str) or name.startswith('{'):
                continue
            value = attributes[name]
            lower = name.lower()
            if not value.strip(_HTML_WHITESPACE) and (
                lower in EMPTY_REMOVABLE_ATTRIBUTES or lower.startswith('on')
            ):
                del attributes[name]
            elif lower in BOOLEAN_ATTRIBUTES:
                # HTMLシリアライザは属性名のみを出力する。
                # XMLでは整形式を保つため属性名と同じ値に正規化する。
                attributes[name] = lower

        for tag, name, redundant in REDUNDANT_ATTRIBUTES:
            if local != tag or name not in attributes:
                continue
            if name == 'type' and self.keep_type_attributes:
                continue
            value = attributes[name].strip(_HTML_WHITESPACE).lower()
            if redundant is None or value == redundant:
                del attributes[name]

    def _is_css(self, element: etree._Element) -> bool:
        return element.get('type', 'text/css').strip().lower() == 'text/css'

    def _is_javascript(self, element: etree._Element) -> bool:
        return element.get('type', '').strip().lower() in SCRIPT_TYPES

    def _minify_embedded(self, element: etree._Element, minifier, enabled: bool) -> None:
        """<style>/<script> の内容を対応する圧縮処理に委譲します。失敗時は元の内容を保持します。"""
        if not enabled or len(element) or not element.text:
            return
        try:
            minified = minifier(element.text)
        except TransformError as e:
            logger.bind(tag=element.tag, error=str(e)).debug(
                '埋め込みコードの圧縮に失敗したため元の内容を保持します。'
            )
            return

        if self.method == 'xml' and ('<' in minified or '&' in minified):
            if self.html_compatible:
                # CDATA区間や文字参照はHTMLのscript/style内では解釈されない
                logger.bind(tag=element.tag).debug(
                    'エスケープが必要な埋め込みコードのため元の内容を保持します。'
                )
                return
            if ']]>' in minified:
                return
            element.text = etree.CDATA(minified)
        else:
            element.text = minified

    def _keep_explicit_end_tags(self, root: etree._Element) -> None:
        """
        空要素以外のXHTML要素が '<div/>' のような自己終了タグで出力されないよう、
        子を持たない要素に空文字列のテキストを設定します。
        """
        for element in root.iter():
            local = self._html_localname(element)
            if local is None or local in VOID_TAGS:
                continue
            if len(element) == 0 and not element.text:
                element.text = ''


def minify_markup(data: bytes, html_compatible: bool = False) -> bytes:
    """
    HTML/XHTML/XMLを構造を保ったまま圧縮します。

    まずXMLとして解析し、整形式でない場合は html_compatible が真のときに限り
    HTMLパーサーで再解析します。表示されるテキストや文書の意味は変更しません。

    html_compatible はHTMLとしても読まれるファイル (.html/.htm) を表します。
    XMLとして解析できた場合でも、script/style の内容はHTMLとして読まれても
    意味が変わらない場合に限り書き換えます。

    Raises:
        MarkupMinifyError: 解析に失敗した場合。
    """
    try:
        root = etree.fromstring(data, _xml_parser())
        method = 'xml'
    except etree.XMLSyntaxError as xml_error:
        if not html_compatible:
            raise MarkupMinifyError(f'XMLとして解析できません: {xml_error}') from xml_error
        try:
            data.decode('utf-8')
            root = etree.fromstring(data, _html_parser())
        except (UnicodeDecodeError, etree.LxmlError, ValueError) as html_error:
            raise MarkupMinifyError(
                f'HTMLとして解析できません: {html_error}'
            ) from html_error
        if root is None:
            raise MarkupMinifyError('HTMLとして解析できません: 空のドキュメントです')
        method = 'html'

    tree = root.getroottree()
    _DocumentMinifier(tree, method, html_compatible=html_compatible).minify()

    if method == 'html':
        return etree.tostring(tree, method='html', encoding='utf-8')

    docinfo = tree.docinfo
    has_declaration = data.lstrip(b'\xef\xbb\xbf \t\r\n').startswith(b'<?xml')
    return etree.tostring(
        tree,
        encoding=docinfo.encoding or 'UTF-8',
        xml_declaration=has_declaration,
        standalone=docinfo.standalone if has_declaration else None,
    )


class MarkupMinifier(BaseTransformer):
    """HTML/XHTML/XML(OPFを含む)ファイルを圧縮するクラス。"""

    action = Action.MINIFY_MARKUP

    def transform(self, data: bytes, entry: Entry) -> Optional[bytes]:
        try:
            return minify_markup(
                data, html_compatible=entry.extension in HTML_EXTENSIONS
            )
        except MarkupMinifyError as e:
            raise MarkupMinifyError(str(e), entry.relative_path) from e
