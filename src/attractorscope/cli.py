"""
Command-line interface for attractorscope.
"""

import argparse
import json
import logging
import sys
import time
from pathlib import Path

import numpy as np

from attractorscope.core.polisher import SnapshotPolisher
from attractorscope.curves import (
    CUBE_LATTICE_DEPTH,
    SQUARE_LATTICE_DEPTH,
    cube_lattice,
    square_lattice,
)
from attractorscope.io.console import format_kick, format_spectrum_line
from attractorscope.stream import AudioStream, CaptureSource, StreamConfig

# Render loop rate for the console consumer
FRAME_RATE = 60


def run_console(
    stream: AudioStream,
    duration: float | None = None,
    until=None,
    show_spectrum: bool = True,
) -> dict[str, int]:
    """
    Poll a started stream once per frame and print what arrives.

    Args:
        stream: A started AudioStream.
        duration: Stop after this many seconds. None = run until ``until``
            is set or the user interrupts.
        until: Optional threading.Event that ends the loop when set.
        show_spectrum: Print a spectrum line per snapshot.

    Returns:
        Counts of snapshots received and kicks seen.
    """
    polisher = SnapshotPolisher()
    frame_dt = 1.0 / FRAME_RATE
    received = 0
    kicks = 0
    t0 = last = time.monotonic()

    try:
        while True:
            now = time.monotonic()
            if duration is not None and now - t0 >= duration:
                break
            finished = until is not None and until.is_set()
            if finished:
                stream.end_of_input()
            alive = stream.running

            snapshot = stream.poll()
            polisher.update(snapshot, now - last)
            last = now

            if snapshot is not None:
                received += 1
                if show_spectrum and snapshot.display is not None:
                    print(format_spectrum_line(snapshot.display))
                if snapshot.transient is not None:
                    kicks += 1
                    print(format_kick(snapshot.transient))
            elif finished and not alive:
                break

            time.sleep(frame_dt)
    except KeyboardInterrupt:
        print()

    return {"snapshots": received, "kicks": kicks}


def _stream_session(source: CaptureSource, args, until=None) -> int:
    config = StreamConfig(with_display=not args.quiet)
    with AudioStream(source, config) as stream:
        counts = run_console(
            stream,
            duration=getattr(args, "duration", None),
            until=until,
            show_spectrum=not args.quiet,
        )
        windows = stream.windows_processed

    print(f"Windows analyzed: {windows}")
    print(f"Snapshots received: {counts['snapshots']}")
    print(f"Kicks: {counts['kicks']}")
    return 0


def cmd_live(args) -> int:
    from attractorscope.io.capture import DeviceCapture, list_input_devices

    if args.list_devices:
        for dev in list_input_devices():
            print(
                f"{dev['index']:3d}  {dev['name']}  "
                f"({dev['max_input_channels']} ch, {dev['default_samplerate']:.0f} Hz)"
            )
        return 0

    try:
        source = DeviceCapture(device=args.device, sample_rate=args.sample_rate)
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Listening on: {source.name} ({source.sample_rate:.0f} Hz, {source.channels} ch)")
    print("Press Ctrl+C to stop")
    return _stream_session(source, args)


def cmd_play(args) -> int:
    from attractorscope.io.capture import FileCapture

    if not args.input.exists():
        print(f"Error: Input file not found: {args.input}", file=sys.stderr)
        return 1

    source = FileCapture(args.input, realtime=args.realtime)
    print(f"Playing: {args.input} ({source.duration:.2f}s at {source.sample_rate:.0f} Hz)")
    return _stream_session(source, args, until=source.finished)


def cmd_analyze(args) -> int:
    from attractorscope.pipeline import AudioPipeline

    pipeline = AudioPipeline()
    if args.clear_cache:
        pipeline.clear_cache()
        print("Cache cleared")

    if not args.input.exists():
        print(f"Error: Input file not found: {args.input}", file=sys.stderr)
        return 1

    output_path = args.output
    if output_path is None:
        suffix = ".npz" if args.format == "numpy" else ".json"
        output_path = args.input.with_name(f"{args.input.stem}_snapshots{suffix}")

    if not args.quiet:
        print(f"Processing: {args.input}")

    result = pipeline.process(
        args.input,
        output_path=output_path,
        format=args.format,
        use_cache=not args.no_cache,
    )

    if not args.quiet:
        print(f"Duration: {result['duration']:.2f}s")
        print(f"Sample rate: {result['sample_rate']:.0f} Hz")
        print(f"Frames: {result['n_frames']}")
        print(f"Transients: {result['n_transients']}")
        print(f"Output: {result['output_path']}")

    if args.summary:
        print("\n--- Manifest Summary ---")
        print(json.dumps(result["manifest"]["metadata"], indent=2))

    return 0


def cmd_lattice(args) -> int:
    if args.dim == 2:
        depth = SQUARE_LATTICE_DEPTH if args.depth is None else args.depth
        points = square_lattice(args.count, depth)
    else:
        depth = CUBE_LATTICE_DEPTH if args.depth is None else args.depth
        points = cube_lattice(args.count, depth)

    np.save(args.output, points)
    print(f"Wrote {len(points)} points ({args.dim}D, depth {depth}) to {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="attractorscope",
        description="Audio-reactive spectral analysis for particle visuals",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log analyzer activity (-vv for debug)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    live = sub.add_parser("live", help="Analyze a capture device in real time")
    live.add_argument("--device", default=None, help="Input device name or index")
    live.add_argument("--sample-rate", type=float, default=None,
                      help="Capture sample rate (default: device default)")
    live.add_argument("--duration", type=float, default=None,
                      help="Stop after this many seconds")
    live.add_argument("--list-devices", action="store_true",
                      help="List input devices and exit")
    live.add_argument("-q", "--quiet", action="store_true",
                      help="Only print kicks")
    live.set_defaults(func=cmd_live)

    play = sub.add_parser("play", help="Stream an audio file through the analyzer")
    play.add_argument("input", type=Path, help="Input audio file (wav, mp3, flac)")
    play.add_argument("--realtime", action="store_true",
                      help="Deliver audio at playback speed")
    play.add_argument("-q", "--quiet", action="store_true",
                      help="Only print kicks")
    play.set_defaults(func=cmd_play)

    analyze = sub.add_parser("analyze", help="Export per-window snapshots of a file")
    analyze.add_argument("input", type=Path, help="Input audio file (wav, mp3, flac)")
    analyze.add_argument("-o", "--output", type=Path, default=None,
                         help="Output path (default: <input>_snapshots.json)")
    analyze.add_argument("--format", choices=["json", "numpy"], default="json",
                         help="Output format (default: json)")
    analyze.add_argument("--no-cache", action="store_true",
                         help="Ignore and do not write the manifest cache")
    analyze.add_argument("--clear-cache", action="store_true",
                         help="Delete cached manifests first")
    analyze.add_argument("-q", "--quiet", action="store_true",
                         help="Suppress progress output")
    analyze.add_argument("--summary", action="store_true",
                         help="Print manifest metadata")
    analyze.set_defaults(func=cmd_analyze)

    lattice = sub.add_parser("lattice", help="Write static particle positions")
    lattice.add_argument("--dim", type=int, choices=[2, 3], default=3)
    lattice.add_argument("--count", type=int, default=65_536)
    lattice.add_argument("--depth", type=int, default=None,
                         help="Curve depth (default: 6 for 2D, 4 for 3D)")
    lattice.add_argument("-o", "--output", type=Path, required=True,
                         help="Output .npy path")
    lattice.set_defaults(func=cmd_lattice)

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
