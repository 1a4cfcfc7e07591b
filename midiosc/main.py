"""Main entry point for the midiosc bridge.

This module contains the command-line argument handling. It sets up
logging, builds the bridge from the stored settings, and runs the requested
subcommand.
"""

import logging
from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import List, Optional

from midiosc import constants
from midiosc.base import BridgeError, ValidationError
from midiosc.bridge import Bridge, bridge_context
from midiosc.codec import parameter_mapping_from_json
from midiosc.command import OscCommand, OscValue
from midiosc.config import config_dir
from midiosc.learn import LearnSpec
from midiosc.mapping import Mapping, ParameterMapping

# Seconds between checks for Ctrl-C while waiting on MIDI
POLL_INTERVAL = 0.1


def parse_osc_value(raw: str) -> OscValue:
    """Interpret a command-line argument as an int, float, bool or string."""
    if raw in ("true", "false"):
        return raw == "true"
    for conv in (int, float):
        try:
            return conv(raw)
        except ValueError:
            pass
    return raw


def parse_parameter_mapping(raw: str) -> ParameterMapping:
    """Parse a learn substitution given as INDEX:SUBSTITUTION[:VALUE].

    The value fills the field the substitution reads, e.g. `1:track_name:Drums`
    or `0:static_value:0.5`.
    """
    parts = raw.split(":", 2)
    if len(parts) < 2:
        raise ValidationError(f"Expected INDEX:SUBSTITUTION[:VALUE], got {raw!r}")
    try:
        index = int(parts[0])
    except ValueError as e:
        raise ValidationError(f"Invalid parameter index in {raw!r}") from e
    data: dict[str, object] = {"parameter_index": index, "substitution": parts[1]}
    if len(parts) == 3:
        value = parts[2]
        match parts[1]:
            case "track_name":
                data[parts[1]] = value
            case "static_value":
                data[parts[1]] = parse_osc_value(value)
            case _:
                try:
                    data[parts[1]] = int(value)
                except ValueError as e:
                    raise ValidationError(f"Invalid value in {raw!r}") from e
    return parameter_mapping_from_json(data)


def run(bridge: Bridge) -> None:
    bridge.open_midi()
    logging.info(
        "bridging %s to OSC, %d mappings loaded",
        ", ".join(bridge.midi_input.current_devices()) or "no devices",
        len(bridge.mappings.get_all()),
    )
    try:
        while True:
            bridge.midi_input.pump(POLL_INTERVAL)
    except KeyboardInterrupt:
        pass


def learn(
    bridge: Bridge,
    address: str,
    params: List[str],
    substitutions: Optional[List[ParameterMapping]] = None,
) -> Optional[Mapping]:
    learned: List[Mapping] = []
    bridge.learn.on_complete(learned.append)
    command = OscCommand.create(address, [parse_osc_value(p) for p in params])
    bridge.open_midi()
    bridge.start_learn(LearnSpec(command, tuple(substitutions or ())))
    print(f"Waiting for MIDI input to map to {command} (Ctrl-C to cancel)")
    try:
        while bridge.learn.is_active():
            bridge.midi_input.pump(POLL_INTERVAL)
    except KeyboardInterrupt:
        bridge.learn.cancel()
    return learned[0] if learned else None


def list_devices(bridge: Bridge) -> None:
    listing = bridge.devices.list_devices()
    for entry in listing.devices:
        print(f"{entry.id}\t{entry.name}")


def list_mappings(bridge: Bridge) -> None:
    for mapping in bridge.mappings.get_all():
        state = "on" if mapping.enabled else "off"
        device = mapping.midi_device or constants.ALL_DEVICES_LABEL
        print(f"{mapping.id}\t[{state}]\t{mapping}\t({device})")


def make_parser() -> ArgumentParser:
    """Create the command-line argument parser.

    Returns:
        An ArgumentParser with the global options and one subcommand per
        bridge operation.
    """
    parser = ArgumentParser(prog="midiosc")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--config-dir", type=Path, default=None)
    parser.add_argument("--osc-host", default=None)
    parser.add_argument("--osc-port", type=int, default=None)
    parser.add_argument("--device", default=None)
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("run", help="bridge MIDI to OSC until interrupted")
    subparsers.add_parser("devices", help="list MIDI input devices")
    subparsers.add_parser("mappings", help="list stored mappings")
    learn_parser = subparsers.add_parser("learn", help="map the next MIDI event")
    learn_parser.add_argument("address")
    learn_parser.add_argument("params", nargs="*")
    learn_parser.add_argument(
        "--map",
        dest="substitutions",
        action="append",
        default=[],
        type=parse_parameter_mapping,
        metavar="INDEX:SUBSTITUTION[:VALUE]",
        help="rewrite an argument from the MIDI event, may be repeated",
    )
    subparsers.add_parser("test-osc", help="send the OSC test message")
    return parser


def configure_logging(log_level: str) -> None:
    """Configure the logging system with the specified log level.

    Args:
        log_level: The logging level (e.g., 'DEBUG', 'INFO', 'WARNING').
    """
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(filename)s:%(lineno)d -- %(message)s",
        level=log_level,
    )


def main_with_args(args: Namespace) -> int:
    bridge = Bridge.open(
        args.config_dir if args.config_dir is not None else config_dir(),
        osc_host=args.osc_host,
        osc_port=args.osc_port,
        device=args.device,
    )
    with bridge_context(bridge):
        match args.command:
            case "run":
                run(bridge)
            case "devices":
                list_devices(bridge)
            case "mappings":
                list_mappings(bridge)
            case "learn":
                mapping = learn(
                    bridge, args.address, args.params, args.substitutions
                )
                if mapping is None:
                    return 1
                print(f"Created {mapping}")
            case "test-osc":
                bridge.test_osc()
                print("Test message sent")
            case _:
                raise ValueError(f"Unknown command: {args.command}")
    return 0


def main() -> None:
    """Main entry point for the midiosc bridge.

    Parses command-line arguments, configures logging, and runs the chosen
    subcommand, exiting non-zero on a bridge failure.
    """
    parser = make_parser()
    args = parser.parse_args()
    configure_logging(args.log_level)
    try:
        code = main_with_args(args)
    except BridgeError as e:
        logging.error("%s", e)
        code = 1
    logging.info("done")
    raise SystemExit(code)


if __name__ == "__main__":
    main()
