# Copyright (c) 2017-2019, Stefan Grönke
# Copyright (c) 2014-2018, iocage
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted providing that the following conditions
# are met:
# 1. Redistributions of source code must retain the above copyright
#    notice, this list of conditions and the following disclaimer.
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE AUTHOR ``AS IS'' AND ANY EXPRESS OR
# IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE IMPLIED
# WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED.  IN NO EVENT SHALL THE AUTHOR BE LIABLE FOR ANY
# DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS
# OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION)
# HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT,
# STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING
# IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.
"""Derive the network identity of a jail from its slot."""
import typing
import ipaddress

import libjailconf.errors

# MyPy
import libjailconf.Logger  # noqa: F401


class NetworkIdentity:
    """
    IPv4 address, gateway and epair interface of a jail.

    The interface pair ``<prefix><slot>`` is created on the host. Its ``a``
    side is added to the bridge, the ``b`` side is moved into the jail.
    """

    ip_address: ipaddress.IPv4Address
    gateway: ipaddress.IPv4Address
    interface_name: str

    def __init__(
        self,
        ip_address: typing.Union[str, ipaddress.IPv4Address],
        gateway: typing.Union[str, ipaddress.IPv4Address],
        interface_name: str
    ) -> None:
        self.ip_address = ipaddress.IPv4Address(ip_address)
        self.gateway = ipaddress.IPv4Address(gateway)
        self.interface_name = interface_name

    @property
    def interface_a(self) -> str:
        """Return the host side of the interface pair."""
        return f"{self.interface_name}a"

    @property
    def interface_b(self) -> str:
        """Return the jail side of the interface pair."""
        return f"{self.interface_name}b"

    def __eq__(self, other: typing.Any) -> bool:
        """Compare two network identities by their values."""
        if isinstance(other, NetworkIdentity) is False:
            return False
        return (
            (self.ip_address == other.ip_address) and
            (self.gateway == other.gateway) and
            (self.interface_name == other.interface_name)
        ) is True

    def __hash__(self) -> int:
        """Hash the network identity by its values."""
        return hash((self.ip_address, self.gateway, self.interface_name))

    def __repr__(self) -> str:
        """Return a readable representation of the identity."""
        return (
            f"<NetworkIdentity {self.interface_name} "
            f"ip={self.ip_address} gw={self.gateway}>"
        )


def derive_identity(
    slot: int,
    address_prefix: str,
    address_offset: int,
    gateway: str,
    interface_prefix: str="epair",
    logger: typing.Optional['libjailconf.Logger.Logger']=None
) -> NetworkIdentity:
    """
    Map a jail slot to its network identity.

    The last octet of the address prefix is substituted with the sum of slot
    and offset, so that slot 1 becomes 192.168.2.11 with the prefix
    192.168.2. and an offset of 10.

    Args:

        slot (int):
            Positive jail slot number

        address_prefix (str):
            The first three octets including the trailing dot

        address_offset (int):
            Added to the slot to get the last octet

        gateway (str):
            The default router of the jail

        interface_prefix (str): (default="epair")
            Name prefix of the virtual interface pair
    """
    if isinstance(slot, bool) or (isinstance(slot, int) is False):
        raise libjailconf.errors.InvalidSlot(
            slot=slot,
            reason="slots must be integers",
            logger=logger
        )

    if slot <= 0:
        raise libjailconf.errors.InvalidSlot(
            slot=slot,
            reason="slots must be positive",
            logger=logger
        )

    host_octet = slot + address_offset
    if (host_octet < 1) or (host_octet > 254):
        raise libjailconf.errors.InvalidSlot(
            slot=slot,
            reason=(
                f"the address {address_prefix}{host_octet} is out of range"
            ),
            logger=logger
        )

    try:
        ip_address = ipaddress.IPv4Address(f"{address_prefix}{host_octet}")
    except ValueError as e:
        raise libjailconf.errors.InvalidSlot(
            slot=slot,
            reason=str(e),
            logger=logger
        )

    return NetworkIdentity(
        ip_address=ip_address,
        gateway=gateway,
        interface_name=f"{interface_prefix}{slot}"
    )
