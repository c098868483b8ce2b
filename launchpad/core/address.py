"""
Address helpers
Hex addresses are plain strings; new contract addresses are derived deterministically
"""

import hashlib


ZERO_ADDRESS = "0x" + "0" * 40
DEAD_ADDRESS = "0x000000000000000000000000000000000000dEaD"


def derive_address(deployer: str, nonce: int) -> str:
    """CREATE-style address: last 20 bytes of sha3(deployer, nonce)"""
    digest = hashlib.sha3_256(f"{deployer.lower()}:{nonce}".encode()).hexdigest()
    return "0x" + digest[-40:]


def is_zero_address(address: str) -> bool:
    return address is None or address.lower() == ZERO_ADDRESS
