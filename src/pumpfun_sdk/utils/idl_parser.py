"""
IDL Parser module for Anchor programs.
Provides functionality to load an Anchor IDL file, compute discriminators and
decode instruction data.
"""

import hashlib
import json
import struct
from typing import Any

from solders.pubkey import Pubkey

# Constants for Anchor data layout
DISCRIMINATOR_SIZE = 8
PUBLIC_KEY_SIZE = 32
STRING_LENGTH_PREFIX_SIZE = 4


def calculate_discriminator(namespace: str, name: str) -> bytes:
    """Anchor discriminator: first 8 bytes of sha256("<namespace>:<name>").

    Args:
        namespace: ``global`` for instructions, ``account`` or ``event``
        name: Instruction, account or event name as declared by the program

    Returns:
        8-byte discriminator
    """
    return hashlib.sha256(f"{namespace}:{name}".encode()).digest()[:DISCRIMINATOR_SIZE]


class IDLParser:
    """Parser for Anchor IDL definitions (new-style JSON format)."""

    # type_name: (format_char, size_in_bytes)
    _PRIMITIVE_TYPE_INFO = {
        "u8": ("<B", 1),
        "u16": ("<H", 2),
        "u32": ("<I", 4),
        "u64": ("<Q", 8),
        "i8": ("<b", 1),
        "i16": ("<h", 2),
        "i32": ("<i", 4),
        "i64": ("<q", 8),
        "bool": ("<?", 1),
        "pubkey": (None, PUBLIC_KEY_SIZE),
        "string": (None, STRING_LENGTH_PREFIX_SIZE),  # Min size is the length prefix
    }

    def __init__(self, idl_path: str):
        """
        Initialize the IDL parser.

        Args:
            idl_path: Path to the IDL JSON file
        """
        with open(idl_path) as f:
            self.idl = json.load(f)
        self.instructions: dict[bytes, dict[str, Any]] = {}
        self.types: dict[str, dict[str, Any]] = {}
        self.instruction_min_sizes: dict[bytes, int] = {}
        self._build_instruction_map()
        self._build_type_map()
        self._calculate_instruction_sizes()

    # --------------------------------------------------------------------------
    # Public Methods (External API)
    # --------------------------------------------------------------------------

    @property
    def address(self) -> str | None:
        """Program address declared by the IDL."""
        return self.idl.get("address")

    def get_instruction_discriminators(self) -> dict[str, bytes]:
        """Get a mapping of instruction names to their discriminators."""
        return {instr["name"]: disc for disc, instr in self.instructions.items()}

    def get_instruction_names(self) -> list[str]:
        """Get a list of all available instruction names."""
        return [instr["name"] for instr in self.instructions.values()]

    def get_instruction(self, name: str) -> dict[str, Any] | None:
        """Get an instruction definition by name."""
        for instruction in self.instructions.values():
            if instruction["name"] == name:
                return instruction
        return None

    def get_instruction_accounts(self, name: str) -> list[tuple[str, bool, bool]]:
        """Get the ordered (name, is_signer, is_writable) accounts of an instruction.

        Raises:
            KeyError: If the instruction is not declared
        """
        instruction = self.get_instruction(name)
        if instruction is None:
            raise KeyError(f"Instruction '{name}' not found in IDL")
        return [
            (
                account["name"],
                bool(account.get("signer", False)),
                bool(account.get("writable", False)),
            )
            for account in instruction.get("accounts", [])
        ]

    def get_event_discriminators(self) -> dict[str, bytes]:
        """Get a mapping of event names to their discriminators."""
        return {
            event["name"]: bytes(event["discriminator"])
            for event in self.idl.get("events", [])
        }

    def validate_instruction_data_length(self, ix_data: bytes, discriminator: bytes) -> bool:
        """Validate that instruction data meets minimum length requirements."""
        if discriminator not in self.instruction_min_sizes:
            return True

        return len(ix_data) >= self.instruction_min_sizes[discriminator]

    def decode_instruction_data(self, ix_data: bytes) -> dict[str, Any] | None:
        """Decode instruction data (discriminator + args) using IDL definitions.

        Returns:
            ``{"instruction_name": ..., "args": {...}}`` or None if the data does
            not belong to a known instruction or is truncated
        """
        if len(ix_data) < DISCRIMINATOR_SIZE:
            return None

        discriminator = bytes(ix_data[:DISCRIMINATOR_SIZE])
        if discriminator not in self.instructions:
            return None

        if not self.validate_instruction_data_length(ix_data, discriminator):
            return None

        instruction = self.instructions[discriminator]
        data_args = ix_data[DISCRIMINATOR_SIZE:]

        args = {}
        decode_offset = 0
        for arg in instruction.get("args", []):
            try:
                value, decode_offset = self._decode_type(data_args, decode_offset, arg["type"])
            except (struct.error, UnicodeDecodeError, ValueError):
                return None
            args[arg["name"]] = value

        return {"instruction_name": instruction["name"], "args": args}

    def decode_account_data(
        self, account_data: bytes, account_type_name: str, skip_discriminator: bool = True
    ) -> dict[str, Any] | None:
        """
        Decode account data using a specific account type from the IDL.

        Args:
            account_data: Raw account data bytes.
            account_type_name: Name of the account type in the IDL (e.g., "BondingCurve").
            skip_discriminator: Whether to skip the first 8 bytes (Anchor type discriminator).

        Returns:
            Decoded account data as a dictionary, or None if decoding fails.
        """
        if account_type_name not in self.types:
            return None

        data = account_data
        if skip_discriminator:
            if len(account_data) < DISCRIMINATOR_SIZE:
                return None
            data = account_data[DISCRIMINATOR_SIZE:]

        try:
            decoded_data, _ = self._decode_defined_type(data, 0, account_type_name)
        except (struct.error, UnicodeDecodeError, ValueError):
            return None
        return decoded_data

    # --------------------------------------------------------------------------
    # Internal Helper Methods
    # --------------------------------------------------------------------------

    def _build_instruction_map(self):
        """Build a map of discriminators to instruction definitions."""
        for instruction in self.idl.get("instructions", []):
            # The discriminator from the JSON IDL is a list of u8 integers.
            discriminator = bytes(instruction["discriminator"])
            self.instructions[discriminator] = instruction

    def _build_type_map(self):
        """Build a map of type names to their definitions."""
        for type_def in self.idl.get("types", []):
            self.types[type_def["name"]] = type_def

    def _calculate_instruction_sizes(self):
        """Calculate minimum data sizes for each instruction."""
        for discriminator, instruction in self.instructions.items():
            min_size = DISCRIMINATOR_SIZE
            for arg in instruction.get("args", []):
                min_size += self._calculate_type_min_size(arg["type"])
            self.instruction_min_sizes[discriminator] = min_size

    def _calculate_type_min_size(self, type_def: str | dict) -> int:
        """Calculate minimum size in bytes for a type definition."""
        if isinstance(type_def, str):
            info = self._PRIMITIVE_TYPE_INFO.get(type_def)
            return info[1] if info else 0

        if isinstance(type_def, dict):
            if "defined" in type_def:
                type_name = self._get_defined_type_name(type_def)
                fields = self.types[type_name]["type"]["fields"]
                return sum(self._calculate_type_min_size(f["type"]) for f in fields)
            if "array" in type_def:
                element_type, array_length = type_def["array"]
                return self._calculate_type_min_size(element_type) * array_length

        raise ValueError(f"Invalid or unknown type definition for size calculation: {type_def}")

    def _get_defined_type_name(self, type_def: dict[str, Any]) -> str:
        """Extracts the type name from a 'defined' type, handling old and new IDL formats."""
        defined_value = type_def["defined"]
        return defined_value["name"] if isinstance(defined_value, dict) else defined_value

    def _decode_type(self, data: bytes, offset: int, type_def: str | dict) -> tuple[Any, int]:
        """Decode a value based on its type definition."""
        if isinstance(type_def, str):
            return self._decode_primitive(data, offset, type_def)

        if isinstance(type_def, dict):
            if "defined" in type_def:
                type_name = self._get_defined_type_name(type_def)
                return self._decode_defined_type(data, offset, type_name)
            if "array" in type_def:
                element_type, array_length = type_def["array"]
                values = []
                for _ in range(array_length):
                    value, offset = self._decode_type(data, offset, element_type)
                    values.append(value)
                return values, offset

        raise ValueError(f"Invalid or unknown type definition for decoding: {type_def}")

    def _decode_primitive(self, data: bytes, offset: int, type_name: str) -> tuple[Any, int]:
        """Decode primitive types."""
        if type_name not in self._PRIMITIVE_TYPE_INFO:
            raise ValueError(f"Unknown primitive type: {type_name}")

        if type_name == "string":
            length = struct.unpack_from("<I", data, offset)[0]
            offset += STRING_LENGTH_PREFIX_SIZE
            if offset + length > len(data):
                raise ValueError("string runs past end of data")
            value = bytes(data[offset : offset + length]).decode("utf-8")
            return value, offset + length

        if type_name == "pubkey":
            end = offset + PUBLIC_KEY_SIZE
            if end > len(data):
                raise ValueError("pubkey runs past end of data")
            return Pubkey.from_bytes(bytes(data[offset:end])), end

        fmt, size = self._PRIMITIVE_TYPE_INFO[type_name]
        value = struct.unpack_from(fmt, data, offset)[0]
        return value, offset + size

    def _decode_defined_type(
        self, data: bytes, offset: int, type_name: str
    ) -> tuple[dict[str, Any], int]:
        """Decode user-defined struct types."""
        if type_name not in self.types:
            raise ValueError(f"Unknown defined type: {type_name}")

        type_def = self.types[type_name]["type"]
        if type_def["kind"] != "struct":
            raise ValueError(f"Unsupported type kind for decoding: {type_def['kind']}")

        struct_data = {}
        for field in type_def["fields"]:
            value, offset = self._decode_type(data, offset, field["type"])
            struct_data[field["name"]] = value
        return struct_data, offset
