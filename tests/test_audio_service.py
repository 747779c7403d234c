"""
AudioServiceのテスト
"""
import base64
import io
import wave

import numpy as np
import pytest
from unittest.mock import patch

try:
    from readaloud.services.audio_service import AudioService
except OSError as e:  # PortAudioがない環境
    pytest.skip(f"sounddeviceを読み込めません: {e}", allow_module_level=True)

from readaloud.exceptions import InvalidRequestError


def make_wav(sample_rate=16000, channels=1, sample_width=2, frames=b"\x01\x00" * 160):
    """WAVデータを作成"""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(channels)
        wav_file.setsampwidth(sample_width)
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(frames)
    return buffer.getvalue()


class TestAudioService:
    """AudioServiceのテストクラス"""

    @pytest.fixture
    def audio_service(self):
        """AudioServiceのインスタンスを作成"""
        return AudioService()

    def test_init(self, audio_service):
        """初期化テスト（16kHz/16bit/モノラル）"""
        assert audio_service.sample_rate == 16000
        assert audio_service.channels == 1
        assert audio_service.sample_width == 2
        assert audio_service.dtype == "int16"

    @patch("readaloud.services.audio_service.sd.query_devices", return_value=[])
    @patch("readaloud.services.audio_service.sd.wait")
    @patch("readaloud.services.audio_service.sd.rec")
    def test_record_pcm(self, mock_rec, mock_wait, mock_query, audio_service):
        """録音結果をPCMのバイト列で返す"""
        mock_rec.return_value = np.array([[1], [2], [3]], dtype=np.int16)

        pcm = audio_service.record_pcm(duration=1.0)

        assert pcm == np.array([1, 2, 3], dtype=np.int16).tobytes()
        assert mock_rec.call_args.args[0] == 16000
        assert mock_rec.call_args.kwargs["samplerate"] == 16000
        assert mock_rec.call_args.kwargs["dtype"] == "int16"
        assert mock_wait.called

    @patch("readaloud.services.audio_service.sd.query_devices", return_value=[])
    @patch("readaloud.services.audio_service.sd.wait")
    @patch("readaloud.services.audio_service.sd.rec")
    def test_record_pcm_error(self, mock_rec, mock_wait, mock_query, audio_service):
        """全デバイスで失敗した場合は空のバイト列"""
        mock_rec.side_effect = Exception("Recording error")

        assert audio_service.record_pcm(duration=1.0) == b""

    def test_load_wav(self, audio_service, tmp_path):
        """16kHz/16bit/モノラルのWAVからPCMを読み込む"""
        path = tmp_path / "cat.wav"
        path.write_bytes(make_wav())

        assert audio_service.load_wav(path) == b"\x01\x00" * 160

    def test_load_wav_wrong_format(self, audio_service, tmp_path):
        """フォーマットが異なるWAVはエラー"""
        path = tmp_path / "cd.wav"
        path.write_bytes(make_wav(sample_rate=44100, channels=2, frames=b"\x00\x00" * 320))

        with pytest.raises(InvalidRequestError):
            audio_service.load_wav(path)

    def test_encode_base64(self):
        """PCMをbase64文字列に変換"""
        assert base64.b64decode(AudioService.encode_base64(b"\x01\x02")) == b"\x01\x02"

    @patch("readaloud.services.audio_service.sd.query_devices", return_value=[])
    @patch("readaloud.services.audio_service.sd.wait")
    @patch("readaloud.services.audio_service.sd.play")
    def test_play_audio(self, mock_play, mock_wait, mock_query, audio_service):
        """WAVを再生する"""
        assert audio_service.play_audio(make_wav()) is True
        assert mock_play.call_args.kwargs["samplerate"] == 16000
        assert mock_wait.called

    @patch("readaloud.services.audio_service.sd.query_devices", return_value=[])
    @patch("readaloud.services.audio_service.sd.wait")
    @patch("readaloud.services.audio_service.sd.play")
    def test_play_audio_error(self, mock_play, mock_wait, mock_query, audio_service):
        """再生エラーでも例外を投げない"""
        mock_play.side_effect = Exception("Playback error")

        assert audio_service.play_audio(make_wav()) is False
