"""OSC commands: an address plus an ordered tuple of arguments."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Union

from midiosc.base import ValidationError
from midiosc.values import OscAddress

type OscValue = int | float | str | bool
"""A single OSC argument."""


def _assert_osc_value(value: object) -> None:
    if not isinstance(value, (int, float, str, bool)):
        raise ValidationError(
            f"Invalid OSC parameter: {value!r}. Must be a number, string or bool."
        )


@dataclass(frozen=True)
class OscCommand:
    """A command to send over OSC.

    Commands are immutable: substitution produces new commands and leaves the
    stored base command untouched.
    """

    address: OscAddress
    parameters: tuple[OscValue, ...] = ()

    def __post_init__(self) -> None:
        for value in self.parameters:
            _assert_osc_value(value)

    @staticmethod
    def create(
        address: Union[str, OscAddress], parameters: Iterable[OscValue] = ()
    ) -> OscCommand:
        """Build a command, validating the address if given as a string.

        Args:
            address: The address path or an already validated address.
            parameters: The argument values in order.

        Returns:
            The new command.
        """
        osc_address = address if isinstance(address, OscAddress) else OscAddress(address)
        return OscCommand(osc_address, tuple(parameters))

    def with_parameters(self, parameters: Iterable[OscValue]) -> OscCommand:
        return OscCommand(self.address, tuple(parameters))

    def with_parameter(self, index: int, value: OscValue) -> OscCommand:
        """Replace one existing argument.

        Args:
            index: The slot to rewrite; must already exist.
            value: The new argument value.

        Returns:
            A new command with the slot replaced.
        """
        if index < 0 or index >= len(self.parameters):
            raise ValidationError(
                f"Parameter index {index} out of bounds for {self.address} "
                f"with {len(self.parameters)} parameters"
            )
        params = list(self.parameters)
        params[index] = value
        return OscCommand(self.address, tuple(params))

    def to_json(self) -> dict[str, object]:
        return {"address": self.address.path, "parameters": list(self.parameters)}

    def __str__(self) -> str:
        if not self.parameters:
            return self.address.path
        return f"{self.address.path} {' '.join(str(p) for p in self.parameters)}"
