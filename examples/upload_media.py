#!/usr/bin/env python
"""
Example: Upload an image or video with the chunked media upload.

This example demonstrates:
- Loading credentials from environment or a .env file
- Creating an executor using the factory
- Running INIT, APPEND and FINALIZE through MediaService

Usage:
    python examples/upload_media.py --image path/to/image.png
    python examples/upload_media.py --video path/to/video.mp4 --verbose

Requirements:
    Set environment variables or add them to .env:
    - X_API_KEY
    - X_API_SECRET
    - X_ACCESS_TOKEN
    - X_ACCESS_TOKEN_SECRET
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from x_transport.config import ConfigManager
from x_transport.exceptions import (
    ConfigurationError,
    MediaValidationError,
    XTransportError,
)
from x_transport.factory import XExecutorFactory
from x_transport.services.media_service import MediaService


async def upload(args: argparse.Namespace) -> int:
    log = logging.getLogger("upload_media") if args.verbose else None
    config = ConfigManager(dotenv_path=args.env_file)
    executor = XExecutorFactory.create_from_config(config, log=log)
    media_service = MediaService(executor)

    if args.image:
        print(f"Uploading image: {args.image}")
        result = await media_service.upload_image(args.image)
    else:
        print(f"Uploading video: {args.video}")
        print("(This may take a while for large videos...)")
        result = await media_service.upload_video(args.video)

    print(f"Media uploaded: {result.media_id}")
    if result.processing_info:
        print(f"   Processing status: {result.processing_info.state}")
    return 0


def main() -> int:
    """Main entry point for the example."""
    parser = argparse.ArgumentParser(description="Upload media to X")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--image", type=Path, help="Image file (png, jpg, gif, webp, max 5MB)")
    group.add_argument("--video", type=Path, help="Video file (mp4, max 512MB)")
    parser.add_argument("--env-file", type=Path, default=None, help="Path to a .env file")
    parser.add_argument("--verbose", action="store_true", help="Log every request")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")

    try:
        return asyncio.run(upload(args))

    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        print("\nPlease set X_API_KEY, X_API_SECRET, X_ACCESS_TOKEN and X_ACCESS_TOKEN_SECRET")
        return 1

    except MediaValidationError as e:
        print(f"Media validation error: {e}")
        print("\nSupported formats:")
        print("  - Images: PNG, JPEG, GIF, WebP (max 5MB)")
        print("  - Videos: MP4 (max 512MB)")
        return 1

    except XTransportError as e:
        print(f"X API error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
