"""
音声入力/出力サービス
発音評価用の16kHz/16bit/モノラルPCMの録音と、合成音声の再生を行う
"""

import base64
import io
import logging
import wave
from pathlib import Path
from typing import List, Optional

import numpy as np
import sounddevice as sd

from readaloud.config import SpeechSettings
from readaloud.exceptions import InvalidRequestError

logger = logging.getLogger(__name__)


class AudioService:
    """音声入力/出力を管理するサービスクラス"""

    def __init__(self, settings: SpeechSettings | None = None) -> None:
        """初期化処理"""
        settings = settings or SpeechSettings()

        # 音声設定（Azureの発音評価が期待するフォーマット）
        self.sample_rate: int = settings.sample_rate
        self.channels: int = settings.channels
        self.sample_width: int = settings.bits_per_sample // 8
        self.dtype: str = "int16"

    def _candidate_devices(self, input_device: bool) -> List[Optional[int]]:
        """試行するデバイスのリストを作成（デフォルト、その他、最後にNone）"""
        default_index = 0 if input_device else 1
        channel_key = "max_input_channels" if input_device else "max_output_channels"

        candidate_devices: List[Optional[int]] = []
        try:
            if sd.default.device[default_index] >= 0:
                candidate_devices.append(sd.default.device[default_index])
        except Exception as e:
            logger.debug("デフォルトデバイスを取得できません: %s", e)
        try:
            devices = sd.query_devices()
            for i, dev in enumerate(devices):
                if dev[channel_key] > 0 and i not in candidate_devices:
                    candidate_devices.append(i)
        except Exception as e:
            logger.debug("デバイス一覧を取得できません: %s", e)
        if None not in candidate_devices:
            candidate_devices.append(None)
        return candidate_devices

    def record_pcm(self, duration: float = 3.0) -> bytes:
        """
        音声を録音してPCMのバイト列を返す

        Args:
            duration: 録音時間（秒）

        Returns:
            16kHz/16bit/モノラルのPCMデータ、全デバイスで失敗した場合は空のバイト列
        """
        for device_index in self._candidate_devices(input_device=True):
            try:
                logger.info("録音を開始します (Device Index: %s)", device_index)
                recording = sd.rec(
                    int(duration * self.sample_rate),
                    samplerate=self.sample_rate,
                    channels=self.channels,
                    dtype=self.dtype,
                    device=device_index,
                )
                sd.wait()  # 録音が完了するまで待機
                return np.asarray(recording, dtype=np.int16).flatten().tobytes()
            except Exception as e:
                logger.warning("録音エラー (Device %s): %s", device_index, e)
                continue

        logger.error("すべてのデバイスで録音に失敗しました")
        return b""

    def load_wav(self, path: Path) -> bytes:
        """
        WAVファイルからPCMデータを読み込む

        Args:
            path: WAVファイルのパス

        Returns:
            ヘッダを除いたPCMデータ

        Raises:
            InvalidRequestError: 16kHz/16bit/モノラル以外のフォーマットの場合
        """
        with wave.open(str(path), "rb") as wav_file:
            if (
                wav_file.getframerate() != self.sample_rate
                or wav_file.getsampwidth() != self.sample_width
                or wav_file.getnchannels() != self.channels
            ):
                raise InvalidRequestError(
                    f"{path.name}は{self.sample_rate}Hz/{self.sample_width * 8}bit/"
                    f"{self.channels}chのWAVではありません"
                )
            return wav_file.readframes(wav_file.getnframes())

    @staticmethod
    def encode_base64(pcm: bytes) -> str:
        """PCMデータをbase64文字列に変換"""
        return base64.b64encode(pcm).decode("ascii")

    def play_audio(self, wav_bytes: bytes) -> bool:
        """
        WAV形式の音声を再生する

        Args:
            wav_bytes: 再生するWAVデータ（合成音声など）

        Returns:
            再生成功時True
        """
        with wave.open(io.BytesIO(wav_bytes), "rb") as wav_file:
            sample_rate = wav_file.getframerate()
            channels = wav_file.getnchannels()
            frames = np.frombuffer(wav_file.readframes(wav_file.getnframes()), dtype=np.int16)
        if channels > 1:
            frames = frames.reshape(-1, channels)

        for device_index in self._candidate_devices(input_device=False):
            try:
                logger.info("再生を開始します (Device Index: %s)", device_index)
                sd.play(frames, samplerate=sample_rate, device=device_index)
                sd.wait()  # 再生が完了するまで待機
                return True
            except Exception as e:
                logger.warning("再生エラー (Device %s): %s", device_index, e)
                continue

        logger.error("すべてのデバイスで再生に失敗しました")
        return False
