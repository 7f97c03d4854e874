#!/usr/bin/env python3
"""Prefetch the ONNX model and tokenizer named in configs/gline.yaml."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from src.engines.nlp.gline import ArtifactResolutionError, GlineConfig, resolve_model_files

ROOT_DIR = Path(__file__).resolve().parents[1]
CONFIG_PATH = ROOT_DIR / "configs" / "gline.yaml"


def main() -> None:
    parser = argparse.ArgumentParser(description="Download GLiNER ONNX model files")
    parser.add_argument("--model", default=None, help="Hugging Face model ID (defaults to config)")
    parser.add_argument("--cache-dir", default=None, help="Cache directory (defaults to config)")
    args = parser.parse_args()

    config = GlineConfig.from_yaml(CONFIG_PATH) if CONFIG_PATH.exists() else GlineConfig()
    model_id = args.model or config.model_id
    cache_dir = Path(args.cache_dir).expanduser() if args.cache_dir else config.cache_dir

    print(f"Downloading model: {model_id}")
    print(f"Cache directory: {cache_dir}")

    try:
        model_path, tokenizer_path = resolve_model_files(model_id, cache_dir)
    except ArtifactResolutionError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    print(f"Model path: {model_path}")
    print(f"Tokenizer path: {tokenizer_path}")
    print("Model download complete.")


if __name__ == "__main__":
    main()
