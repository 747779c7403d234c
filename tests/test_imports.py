#!/usr/bin/env python3
"""
基本的なインポートテスト
すべての主要モジュールが正しくインポートできることを確認する
"""
import sys
from pathlib import Path

# プロジェクトルートをパスに追加
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


def test_imports():
    """すべての主要モジュールのインポートをテスト"""
    errors = []

    modules = [
        "readaloud.config",
        "readaloud.exceptions",
        "readaloud.logger",
        "readaloud.models.schemas",
        "readaloud.services.api_check_service",
        "readaloud.services.azure_service",
        "readaloud.services.evaluation_service",
        "readaloud.services.fallback_service",
        "readaloud.services.synthesis_service",
    ]

    for module in modules:
        try:
            __import__(module)
            print(f"✓ {module} インポート成功")
        except Exception as e:
            errors.append(f"{module}: {e}")
            print(f"✗ {module} インポート失敗: {e}")

    assert errors == []


if __name__ == "__main__":
    print("=" * 60)
    print("基本的なインポートテストを開始します...")
    print("=" * 60)

    try:
        test_imports()
    except AssertionError:
        sys.exit(1)
    print("すべてのインポートテストが成功しました！")
    sys.exit(0)
