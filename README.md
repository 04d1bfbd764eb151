# sensevid

sensevid encodes a video the way a low-power camera sensor node would. It
writes sender-side traces that describe every frame and every packet. A
network simulator can use those traces to decide which packets arrive. From
the trace of received packets, sensevid then rebuilds the video and reports
the quality of each frame.

## How it works

Frames are taken from the video at the target frame rate and converted to
greyscale. Each frame is then encoded as one of two kinds.

**M frames** (main frames):

- The frame is split into 8×8 blocks.
- Each block is transformed with one of these DCTs: classic (`CLA`), LLM or
  binDCT. The LLM and binDCT transforms come in a triangular zonal variant
  (`tLLM`, `tBIN`) and a square zonal variant (`sLLM`, `sBIN`).
- The coefficients are quantised with the JPEG luminance table, scaled by the
  quality coefficient.
- The coefficients are read in zig-zag order and split into priority layers.
- Each layer is entropy coded with one of three coders:
  - Exp-Golomb (`EG`);
  - run-length coding followed by Exp-Golomb (`RLE_EG`);
  - JPEG-style Huffman coding (`HUFFMAN`).
- Each layer is sent in its own stream of packets.

**S frames** (second frames):

- The difference from the last M frame is computed block by block.
- Blocks whose difference is zero are skipped.
- Every other block gets a priority level from 0 to 4, based on its mean
  square.
- Pixels at or below the threshold are set to zero.
- The encoder keeps only blocks that still hold a non-zero pixel and whose
  level is no higher than `--maxLevelS`.
- Each kept block is coded together with its block number, written as the
  difference from the previous block number.

A frame becomes a new M frame when it is the first frame, or when the RMS
difference between it and the current M frame is greater than the GOP
coefficient. Otherwise it is encoded as an S frame.

For every frame the encoder records:

- the compressed size, bits per pixel and bit rate;
- PSNR and SSIM against the captured frame;
- an estimate of the capture energy and the encoding energy, from a fixed
  model of the node's processor.

## Installation

```
pip install .
```

To read video files, imageio needs a plugin that can decode the video's
format. Install one that suits your files.

## Usage

### Encoding

```
sensevid --dct tBIN --zoneSize 8 --qualityCoef 50 --levelsNb 4 \
         --entropy EG --gopCoef 5 --pps 96 --sim run1 --output out video.avi
```

This creates `out/video-run1/`, which holds:

- `capturedFrames/frameN.png`: the greyscale frames taken from the video;
- `referenceFrames/frameN.png`: the frames as the encoder reconstructs them;
- `st-frame`: one line per frame, giving rank, type, size in bytes, PSNR,
  SSIM, bpp, the size of each layer in bits, capture energy (mJ), encoding
  energy (mJ) and bit rate (kbps);
- `st-packet`: one line per packet, giving send time, sequence number, size
  in bytes, frame number, frame type (`M`, or `S` followed by the number of
  its M frame), layer and block list;
- `inputParameters`: the settings used for the run.

### Rebuilding the received video

Pass a trace of the packets that were received with `--rt`. Its lines use the
tab-separated layout of `st-packet`. Use the same `--sim`, `--output` and
video file as for the encoding run:

```
sensevid --sim run1 --output out --rt received-trace video.avi
```

The number of layers, the threshold, the frame count and the resolution are
read back from `inputParameters`. The encoder's `referenceFrames/` and
`capturedFrames/` are also used.

Frames are rebuilt as follows:

- A missing frame is replaced by the frame before it.
- In an M frame, blocks with nothing received are smoothed from their
  neighbours.
- In an S frame, the blocks that were not received are taken from the decoded
  M frame. If that M frame was not received at all, the S frame counts as
  missing.

The decoded frames are written to `decodedFrames/`. Their PSNR and SSIM are
written to `rt-frame`.

### Options

| Option | Short | Meaning | Default |
| --- | --- | --- | --- |
| `--codec` | `-c` | codec; only `SMPEG` is accepted | `SMPEG` |
| `--thresh` | `-t` | S-frame pixel threshold (at most 255) | `1` |
| `--gopCoef` | `-g` | RMS difference that starts a new M frame (at most 255) | `0` |
| `--qualityCoef` | `-q` | JPEG quality factor (1..100) | `10` |
| `--levelsNb` | `-l` | number of M-frame priority layers | `1` |
| `--dct` | `-d` | `CLA`, `tLLM`, `tBIN`, `sLLM` or `sBIN` | `tBIN` |
| `--zoneSize` | `-z` | zonal DCT size (1..8) | `8` |
| `--entropy` | `-e` | `EG`, `RLE_EG` or `HUFFMAN` | `EG` |
| `--maxLevelS` | `-m` | highest S-frame priority level kept | `0` |
| `--height` | `-h` | target frame height, a multiple of 8 | the video's own height |
| `--width` | `-w` | target frame width, a multiple of 8 | the video's own width |
| `--fps` | `-f` | target frame rate | the video's own rate |
| `--sim` | `-s` | simulation id | `sim` |
| `--pps` | `-p` | packet payload size in bytes | `96` |
| `--rt` | `-r` | received-packet trace; selects rebuilding | |
| `--output` | `-o` | output directory | `./` |

`-h` sets the height, so the command has no help option.

If an option is invalid, a file is missing, or a block does not fit in a
packet, the command prints `sensevid: <message>` to standard error and exits
with status 1.

## Using it as a library

| Module | What it provides |
| --- | --- |
| `sensevid.dct` | the block transforms, through `dct` and `idct` |
| `sensevid.entropy` | the entropy coders, `exp_golomb`, `encode_rle` and `entropy_code` |
| `sensevid.params` | `CodecParams`, `VideoParams` and `SimParams` |
| `sensevid.trace` | trace records, trace writers and parsers |
| `sensevid.metrics` | `mse`, `psnr`, `ssim` and greyscale image input and output |
| `sensevid.mainframe` | quantisation, `zigzag_scan`, `make_layers` and M-frame encoding |
| `sensevid.secondframe` | S-frame reduction and packetisation |
| `sensevid.video` | `capture_frames`, `encode_video` and `build_received_video` |

```python
import numpy as np
from sensevid import dct, entropy, mainframe

block = np.arange(64, dtype=float).reshape(8, 8) - 32
coefficients = dct.dct(block, "tLLM", 8)
restored = dct.idct(coefficients, "tLLM", 8)

row = mainframe.zigzag_scan(np.arange(64).reshape(8, 8))
bits = entropy.encode_eg(row)
```

## What it does not do

- sensevid does not simulate the network. Which packets are received must
  come from elsewhere, as a trace in the `st-packet` layout.
- The bit strings are used only to measure sizes. No bitstream file is
  written.
- The receiver does not decode bits. It rebuilds frames from the encoder's
  own captured and reference frames, using only the parts that the trace
  marks as received.