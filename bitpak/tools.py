import sys
import time
import argparse
import threading
import queue
import numpy as np

from bitpak import BitpakFileReader, BitpakFileWriter
from bitpak.codec import StreamEncoder, FrameDecoder, iter_frames
from bitpak.file import load_media, save_media
from bitpak.frame import threshold
from bitpak.player import Synchronizer, TickLoop

def parse_size(text, what="size"):
    size = tuple(int(d) for d in text.split("x"))
    if len(size) != 2:
        raise ValueError(f"{what} {size} must be exactly 2 dimensions")
    if size[0] <= 0 or size[1] <= 0:
        raise ValueError(f"{what} {size} must be positive")
    return size

def render_text(frame):
    # two text characters per pixel keep the aspect ratio roughly square
    rows = np.where(frame.unpack(), "##", "  ")
    return "\n".join("".join(row) for row in rows)

def main_pack():
    parser = argparse.ArgumentParser(
        description="Pack raw grayscale video into a Bitpak file.")
    parser.add_argument('input', type=str,
        help="Path to raw 8 bit grayscale input file (or - to read from "
            "stdin).")
    parser.add_argument('output', type=str,
        help="Path to Bitpak output file.")
    parser.add_argument('-s', '--size', type=str, required=True,
        help="Width and height (as in WxH) of each frame.")
    parser.add_argument('-f', '--framerate', type=float, default=30,
        help="Framerate the frames are played back at.")
    parser.add_argument('-t', '--threshold', type=int, default=128,
        help="Pixels at or below this level become black.")
    parser.add_argument('-n', '--num-frames', type=int,
        help="Only pack the first n frames.")
    parser.add_argument('-a', '--audio', type=str,
        help="Path to an audio file to store along with the video.")
    parser.add_argument('--verify', action="store_true",
        help="Unpack each frame and verify it matches the original.")

    args = parser.parse_args()

    size = parse_size(args.size)
    if args.framerate <= 0:
        raise ValueError(f"framerate {args.framerate} must be positive")
    if not 0 <= args.threshold <= 255:
        raise ValueError(f"threshold {args.threshold} must be from 0 to 255")
    if args.num_frames is not None and args.num_frames <= 0:
        raise ValueError(f"number of frames {args.num_frames} must be positive")

    if args.input == "-":
        fin = sys.stdin.buffer
    else:
        fin = open(args.input, "rb")
    encoder = StreamEncoder(size, args.framerate)

    empty_frames, full_frames = queue.Queue(), queue.Queue()
    for _ in range(4):
        empty_frames.put(np.empty((size[1], size[0]), dtype=np.uint8))
    frame_size = size[0]*size[1]

    def read_thread_fn():
        while True:
            frame = empty_frames.get()
            # if we didn't read a complete frame, we're done reading
            if fin.readinto(frame) != frame_size: break
            full_frames.put(frame)
        fin.close()
        full_frames.put(None)

    num_frames = 0
    pack_time = 0
    packed_frames = [] # kept for verification only
    read_thread = threading.Thread(target=read_thread_fn, daemon=True)
    read_thread.start()
    while True:
        frame = full_frames.get()
        if frame is None: break

        # time how long packing the frame takes
        s = time.perf_counter()
        bits = threshold(frame, args.threshold)
        encoder.add_frame(bits)
        e = time.perf_counter()

        empty_frames.put(frame)
        if args.verify:
            packed_frames.append(bits)
        pack_time += (e-s)
        num_frames += 1

        print("  Packed {} frames...".format(num_frames), end="\r")
        if args.num_frames is not None and num_frames == args.num_frames: break

    if num_frames == 0:
        print("No complete frames in input")
        exit(1)

    audio = None
    if args.audio is not None:
        with open(args.audio, "rb") as f:
            audio = f.read()

    writer = BitpakFileWriter(args.output)
    save_media(writer, encoder.getvalue(), audio)
    writer.close()

    print("Finished packing {} frames".format(num_frames))
    print("Average pack time: {:.2f}ms".format(pack_time/num_frames*1000))
    print("Compression ratio: {:.2f}%".format(
        writer.file_size/(frame_size*num_frames)*100))
    if args.verify:
        reader = BitpakFileReader(args.output)
        stream, _ = load_media(reader)
        reader.close()
        verify_result = stream.frame_count == num_frames and all(
            got == expected
            for got, expected in zip(iter_frames(stream), packed_frames))
        print("Verify result:", ("success" if verify_result else "FAILURE"))
        if not verify_result:
            exit(1)

def main_unpack():
    parser = argparse.ArgumentParser(
        description="Unpack raw video data from a Bitpak file.")
    parser.add_argument('input', type=str,
        help="Path to Bitpak input file.")
    parser.add_argument('output', type=str,
        help="Path to raw output file (or - to write to stdout).")
    parser.add_argument('-n', '--num-frames', type=int,
        help="Only unpack the first n frames.")
    parser.add_argument('--rgba', action="store_true",
        help="Write RGBA pixels instead of 8 bit grayscale.")
    parser.add_argument('-a', '--audio', type=str,
        help="Path to write the stored audio to.")

    args = parser.parse_args()

    if args.num_frames is not None and args.num_frames <= 0:
        raise ValueError(f"number of frames {args.num_frames} must be positive")

    reader = BitpakFileReader(args.input)
    stream, audio = load_media(reader)
    reader.close()
    if args.output == "-":
        fout = sys.stdout.buffer
    else:
        fout = open(args.output, "wb")

    header = stream.header
    if fout is not sys.stdout.buffer:
        print("Frame size: {}x{}".format(*header.size))
        print("Framerate: {:.2f}".format(header.fps))
        print("Frames: {}".format(header.frame_count))

    if args.audio is not None:
        if audio is None:
            print("File contains no audio")
        else:
            with open(args.audio, "wb") as f:
                f.write(audio)

    if args.rgba:
        out = np.empty((header.height, header.width, 4), dtype=np.uint8)
    num_frames = 0
    unpack_time = 0
    decoder = FrameDecoder(stream)
    while True:
        frame = decoder.frame
        if args.rgba:
            fout.write(frame.to_rgba(out))
        else:
            fout.write(np.where(frame.unpack(), 0, 255).astype(np.uint8))
        num_frames += 1

        if fout is not sys.stdout.buffer:
            print("  Unpacked {} frames...".format(num_frames), end="\r")
        if args.num_frames is not None and num_frames == args.num_frames: break

        # time how long unpacking the frame takes
        s = time.perf_counter()
        more = decoder.advance_by_one_frame()
        e = time.perf_counter()
        if not more: break # out of frames
        unpack_time += (e-s)

    if fout is not sys.stdout.buffer:
        fout.close()
        print("Finished unpacking {} frames".format(num_frames))
        if num_frames > 1:
            print("Average unpack time: {:.2f}ms".format(
                unpack_time/(num_frames-1)*1000))

def main_play():
    parser = argparse.ArgumentParser(
        description="Play a Bitpak file as text in the terminal.")
    parser.add_argument('input', type=str,
        help="Path to Bitpak input file.")
    parser.add_argument('-r', '--rate', type=float, default=30,
        help="Number of times per second the screen is redrawn.")

    args = parser.parse_args()

    if args.rate <= 0:
        raise ValueError(f"rate {args.rate} must be positive")

    reader = BitpakFileReader(args.input)
    stream, _ = load_media(reader)
    reader.close()

    def render(frame):
        # move the cursor home and draw over the last frame
        sys.stdout.write("\x1b[H" + render_text(frame) + "\n")
        sys.stdout.flush()

    loop = TickLoop(args.rate)
    sync = Synchronizer(render, loop.schedule, loop.cancel)
    sync.load(stream)
    sys.stdout.write("\x1b[2J")
    sync.play()
    try:
        loop.run()
    except KeyboardInterrupt:
        sync.stop()
    print("Played {} of {} frames".format(
        sync.state.index+1, stream.frame_count))
