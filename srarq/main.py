#!/usr/bin/env python3
"""
Selective Repeat ARQ Emulator - Main Entry Point

Runs the SR sender and receiver over an emulated channel that loses
and corrupts packets, then reports delivery and retransmission figures.

Usage:
    srarq --messages 100 --loss 0.2 --corrupt 0.2 --interarrival 20
    python -m srarq.main --window 8 --seqspace 16 --verbose
"""

import argparse
import sys

from srarq.config import (
    WINDOWSIZE, SEQSPACE, RTT, NUM_MESSAGES, LOSS_PROBABILITY,
    CORRUPT_PROBABILITY, MEAN_INTERARRIVAL, RNG_SEED, ConfigurationError
)
from srarq.simulation.simulator import Simulator, SimulatorConfig
from srarq.utils.logger import LogLevel


def run_emulation(args):
    """Run a single emulation with the parsed parameters."""
    if args.debug:
        log_level = LogLevel.DEBUG
    elif args.verbose:
        log_level = LogLevel.INFO
    else:
        log_level = LogLevel.WARNING

    config = SimulatorConfig(
        window_size=args.window,
        seqspace=args.seqspace,
        rtt=args.rtt,
        num_messages=args.messages,
        mean_interarrival=args.interarrival,
        loss_prob=args.loss,
        corrupt_prob=args.corrupt,
        seed=args.seed,
        log_level=log_level,
        log_file=args.log_file
    )

    print("=" * 60)
    print("SELECTIVE REPEAT ARQ EMULATOR")
    print("=" * 60)
    print(f"\nConfiguration:")
    print(f"  Messages: {config.num_messages}")
    print(f"  Loss probability: {config.loss_prob}")
    print(f"  Corruption probability: {config.corrupt_prob}")
    print(f"  Mean interarrival: {config.mean_interarrival}")
    print(f"  Window size: {config.window_size}")
    print(f"  Sequence space: {config.seqspace}")
    print(f"  RTT: {config.rtt}")
    print(f"  Seed: {config.seed}")

    sim = Simulator(config)
    try:
        results = sim.run()
    finally:
        sim.logger.close()

    print("\n" + "=" * 60)
    print("RESULTS")
    print("=" * 60)

    print(f"\nTransfer Status:")
    print(f"  Complete: {results['complete']}")
    print(f"  Data Valid: {results['verification']['valid']}")
    print(f"  Simulation Time: {results['simulation_time']:.2f}")

    sender = results['sender']
    receiver = results['receiver']
    print(f"\nSender (A):")
    print(f"  Packets sent: {sender['packets_sent']}")
    print(f"  Retransmissions: {sender['retransmissions']}")
    print(f"  ACKs received: {sender['acks_received']}")
    print(f"  New ACKs: {sender['new_acks']}")
    print(f"  Window full events: {sender['window_full']}")

    print(f"\nReceiver (B):")
    print(f"  Packets delivered: {receiver['packets_delivered']}")
    print(f"  Duplicates: {receiver['duplicate_packets']}")
    print(f"  Corrupted dropped: {receiver['corrupted_packets']}")
    print(f"  ACKs sent: {receiver['acks_sent']}")

    metrics = results['metrics']
    print(f"\nPerformance Metrics:")
    print(f"  Throughput: {metrics['throughput']:.4f} messages/time unit")
    print(f"  Retransmission ratio: {metrics['retransmission_ratio']:.3f}")
    if metrics['latency']['samples'] > 0:
        print(f"  Mean latency: {metrics['latency']['mean']:.2f}")

    return results


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Selective Repeat ARQ emulator",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--messages', type=int, default=NUM_MESSAGES,
                        help='Number of application messages to send')
    parser.add_argument('--loss', type=float, default=LOSS_PROBABILITY,
                        help='Packet loss probability')
    parser.add_argument('--corrupt', type=float, default=CORRUPT_PROBABILITY,
                        help='Packet corruption probability')
    parser.add_argument('--interarrival', type=float, default=MEAN_INTERARRIVAL,
                        help='Average time between application messages')
    parser.add_argument('--window', type=int, default=WINDOWSIZE,
                        help='Window size')
    parser.add_argument('--seqspace', type=int, default=SEQSPACE,
                        help='Sequence space (at least twice the window size)')
    parser.add_argument('--rtt', type=float, default=RTT,
                        help='Retransmission timer period')
    parser.add_argument('--seed', type=int, default=RNG_SEED,
                        help='Random seed')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Log timeouts and retransmissions')
    parser.add_argument('--debug', action='store_true',
                        help='Log every packet event')
    parser.add_argument('--log-file', default=None,
                        help='Also write log lines to this file')
    return parser


def main(argv=None):
    """Main entry point."""
    args = build_parser().parse_args(argv)
    try:
        results = run_emulation(args)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    return 0 if results['verification']['valid'] else 1


if __name__ == "__main__":
    sys.exit(main())
