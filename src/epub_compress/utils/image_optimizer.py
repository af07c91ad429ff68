# FILE: src/epub_compress/utils/image_optimizer.py
import io
import shutil
import subprocess
from typing import Dict, List, Optional, Union

from loguru import logger
from PIL import Image

from ..shared.exceptions import RasterOptimizeError
from ..shared.settings import ImageSettings


class ImageCompressor:
    """Pillow と pngquant を利用して画像をメモリ上で再エンコードするクラス。"""

    REQUIRED_TOOLS = ['pngquant']

    # pngquant の終了コード: 98 = 元より大きくなる, 99 = 指定品質を満たせない
    PNGQUANT_NOT_IMPROVED = (98, 99)

    def __init__(self, settings: ImageSettings):
        """
        Args:
            settings (ImageSettings): 画像圧縮に関する設定オブジェクト。
        """
        self.settings = settings

        self.tools_available: Dict[str, bool] = {}
        for tool in self.REQUIRED_TOOLS:
            if shutil.which(tool):
                self.tools_available[tool] = True
            else:
                self.tools_available[tool] = False
                logger.warning(
                    f"コマンド '{tool}' が見つかりません。"
                    'PNG画像はPillowによる可逆圧縮のみ行います。'
                )

    def detect_format(self, data: bytes) -> Optional[str]:
        """ファイルの先頭バイトから画像フォーマットを判定します。"""
        if data.startswith(b'\x89PNG\r\n\x1a\n'):
            return 'png'
        if data.startswith(b'\xff\xd8\xff'):
            return 'jpeg'
        return None

    def compress_bytes(self, data: bytes) -> Optional[bytes]:
        """
        画像を再エンコードしたバイト列を返します。
        対応していない形式やアニメーション画像の場合はNoneを返します。

        Raises:
            RasterOptimizeError: 画像のデコード・エンコードに失敗した場合。
        """
        fmt = self.detect_format(data)
        if fmt is None:
            logger.debug('対応していない画像形式のためスキップします。')
            return None

        try:
            with Image.open(io.BytesIO(data)) as img:
                if getattr(img, 'is_animated', False):
                    logger.debug('アニメーション画像のためスキップします。')
                    return None
                img.load()
                if fmt == 'jpeg':
                    return self._compress_jpeg(img)
                if self.tools_available.get('pngquant'):
                    return self._compress_pngquant(data)
                return self._compress_png(img)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise RasterOptimizeError(f'画像の再エンコードに失敗しました: {e}') from e

    def _compress_jpeg(self, img: Image.Image) -> bytes:
        """Pillow を使用してJPEG画像を指定品質で再エンコードします。"""
        params: Dict[str, Union[str, int, bool, bytes]] = {
            'format': 'JPEG',
            'quality': self.settings.quality,
            'optimize': True,
            'progressive': self.settings.progressive,
        }
        icc_profile = img.info.get('icc_profile')
        if icc_profile:
            params['icc_profile'] = icc_profile
        exif = img.info.get('exif')
        if exif and not self.settings.strip_metadata:
            params['exif'] = exif

        if img.mode not in ('RGB', 'L', 'CMYK'):
            img = img.convert('RGB')

        buffer = io.BytesIO()
        img.save(buffer, **params)
        return buffer.getvalue()

    def _compress_png(self, img: Image.Image) -> bytes:
        """Pillow を使用してPNG画像を可逆的に最適化します。"""
        params: Dict[str, Union[str, bool]] = {'format': 'PNG', 'optimize': True}
        buffer = io.BytesIO()
        img.save(buffer, **params)
        return buffer.getvalue()

    def pngquant_command(self) -> List[str]:
        """設定の品質から pngquant の品質範囲 (最小-最大) を計算しコマンドを組み立てます。"""
        min_quality, max_quality = self.settings.png_quality_range
        cmd = [
            'pngquant',
            '--quality',
            f'{round(min_quality * 100)}-{round(max_quality * 100)}',
            '--speed',
            str(self.settings.pngquant_speed),
        ]
        if self.settings.strip_metadata:
            cmd.append('--strip')
        cmd.append('-')
        return cmd

    def _compress_pngquant(self, data: bytes) -> Optional[bytes]:
        """pngquant を使用してPNG画像を減色・圧縮します。"""
        cmd = self.pngquant_command()
        result = self._run_command(cmd, data)
        returncode = result['returncode']
        if returncode in self.PNGQUANT_NOT_IMPROVED:
            logger.debug(f'pngquant の結果を採用しません (終了コード: {returncode})')
            return None
        if returncode != 0:
            stderr = result['stderr'].decode('utf-8', 'replace')  # type: ignore[union-attr]
            raise RasterOptimizeError(f'pngquant による圧縮に失敗しました: {stderr}')
        return result['stdout']  # type: ignore[return-value]

    def _run_command(
        self, cmd: List[str], data: bytes
    ) -> Dict[str, Union[bytes, int]]:
        """外部コマンドを実行し、標準入力に画像を渡して結果をキャプチャします。"""
        try:
            logger.debug(f"コマンド実行: {' '.join(cmd)}")
            proc = subprocess.run(
                cmd,
                input=data,
                capture_output=True,
                timeout=self.settings.tool_timeout,
                check=False,
            )
            return {
                'returncode': proc.returncode,
                'stdout': proc.stdout,
                'stderr': proc.stderr,
            }
        except (OSError, subprocess.SubprocessError) as e:
            return {
                'returncode': -1,
                'stdout': b'',
                'stderr': str(e).encode('utf-8', 'replace'),
            }
