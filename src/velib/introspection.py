from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Iterable

from .bus import INTROSPECTABLE_INTERFACE


DOCTYPE = (
    '<!DOCTYPE node PUBLIC "-//freedesktop//DTD D-BUS Object Introspection 1.0//EN"\n'
    ' "http://www.freedesktop.org/standards/dbus/1.0/introspect.dtd">\n'
)

# (in-args, out-args) as D-Bus type signatures.
METHOD_SIGNATURES: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "GetValue": ((), ("v",)),
    "GetText": ((), ("s",)),
    "SetValue": (("v",), ("i",)),
    "GetItems": ((), ("a{sa{sv}}",)),
    "ItemsChanged": ((), ()),
    "AddSetting": (("s", "s", "v", "s", "v", "v"), ("i",)),
    "Introspect": ((), ("s",)),
}

SIGNAL_SIGNATURES: dict[str, tuple[str, ...]] = {
    "PropertiesChanged": ("a{sv}",),
}


def _add_args(parent: ET.Element, signatures: Iterable[str], direction: str | None) -> None:
    for sig in signatures:
        arg = ET.SubElement(parent, "arg", type=sig)
        if direction is not None:
            arg.set("direction", direction)


def describe_interface(
    node: ET.Element,
    interface: str,
    methods: Iterable[str],
    signals: Iterable[str] = (),
) -> ET.Element:
    iface = ET.SubElement(node, "interface", name=interface)
    for name in sorted(methods):
        m = ET.SubElement(iface, "method", name=name)
        ins, outs = METHOD_SIGNATURES.get(name, ((), ()))
        _add_args(m, ins, "in")
        _add_args(m, outs, "out")
    for name in sorted(signals):
        s = ET.SubElement(iface, "signal", name=name)
        _add_args(s, SIGNAL_SIGNATURES.get(name, ()), None)
    return iface


def introspect_xml(interface: str, methods: Iterable[str], signals: Iterable[str] = ()) -> str:
    """Render the introspection document for an object exporting one interface."""

    node = ET.Element("node", name=interface)
    describe_interface(node, interface, methods, signals)
    describe_interface(node, INTROSPECTABLE_INTERFACE, ["Introspect"])
    return DOCTYPE + ET.tostring(node, encoding="unicode")
