#!/usr/bin/env python3
"""GestureTree 模型下载脚本

将 MediaPipe 手部关键点模型下载到 weights/ 目录。
"""

import argparse
import sys
from pathlib import Path
from urllib.request import urlretrieve

MODELS = {
    "hand_landmarker.task": {
        "url": "https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/1/hand_landmarker.task",
        "size": "~8MB",
        "description": "MediaPipe 手部关键点检测模型",
    },
}


def download_progress(block_num, block_size, total_size):
    """显示下载进度"""
    downloaded = block_num * block_size
    percent = min(downloaded * 100 / total_size, 100) if total_size > 0 else 0
    filled = int(50 * percent / 100)
    bar = "█" * filled + "░" * (50 - filled)
    print(f"\r  [{bar}] {percent:.1f}% ({downloaded / 1048576:.1f}/{total_size / 1048576:.1f} MB)", end="", flush=True)


def download_model(name: str, config: dict, weights_dir: Path, force: bool = False) -> bool:
    """下载单个模型文件，先写入 .tmp 再重命名，中断时清理临时文件。"""
    file_path = weights_dir / name
    if file_path.exists() and not force:
        print(f"✓ {name} 已存在，跳过下载")
        return True

    print(f"📦 下载: {name} ({config['size']}) - {config['description']}")
    print(f"🔗 来源: {config['url']}")

    temp_path = file_path.with_suffix(file_path.suffix + ".tmp")
    try:
        urlretrieve(config["url"], temp_path, reporthook=download_progress)
        print()
        temp_path.rename(file_path)
        print(f"✅ 下载完成: {name}")
        return True
    except KeyboardInterrupt:
        print(f"\n⚠️  下载被中断: {name}")
        if temp_path.exists():
            temp_path.unlink()
        return False
    except OSError as e:
        print(f"\n❌ 下载失败: {name}\n   错误: {e}")
        if temp_path.exists():
            temp_path.unlink()
        return False


def main():
    parser = argparse.ArgumentParser(description="GestureTree 模型下载工具")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("weights"),
        help="模型保存目录（默认: weights/）",
    )
    parser.add_argument("--force", action="store_true", help="强制重新下载已存在的文件")
    args = parser.parse_args()

    weights_dir = args.output_dir
    weights_dir.mkdir(parents=True, exist_ok=True)
    print(f"📁 目标目录: {weights_dir.absolute()}")

    failed = [name for name, config in MODELS.items() if not download_model(name, config, weights_dir, args.force)]
    if failed:
        print(f"❌ 失败的模型: {', '.join(failed)}")
        return 1

    print("\n🎉 模型已就绪，现在可以运行：")
    print("   python -m gesturetree")
    print("   python -m gesturetree.scripts.preview_gestures --mirror")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n⚠️  程序被用户中断")
        sys.exit(130)
