"""
schema.py – Named mitigation attributes and their accessors.

Every flag on MitigationRecord is registered once under its display name
(e.g. "DepEnabled").  Lookups are case-insensitive: the built schema is keyed
by the lower-cased name, so "-t depenabled" and "-t DEPENABLED" both work.
"""
from __future__ import annotations

import dataclasses
from types import MappingProxyType
from typing import Callable, Dict, Iterable, Mapping, Optional

from procmit.errors import SchemaError
from procmit.records import MitigationRecord

Accessor = Callable[[MitigationRecord], bool]


@dataclasses.dataclass(frozen=True)
class MitigationAttribute:
    """A display name plus the accessor that reads it from a record."""

    name: str
    getter: Accessor

    def __call__(self, record: MitigationRecord) -> bool:
        return bool(self.getter(record))


# ── Registration table ────────────────────────────────────────────────────────

MITIGATION_TABLE: Dict[str, Accessor] = {
    # DEP
    "DepEnabled": lambda m: m.dep_enabled,
    "DisableAtlThunkEmulation": lambda m: m.disable_atl_thunk_emulation,
    "DepPermanent": lambda m: m.dep_permanent,
    # ASLR
    "EnableBottomUpRandomization": lambda m: m.enable_bottom_up_randomization,
    "EnableForceRelocateImages": lambda m: m.enable_force_relocate_images,
    "EnableHighEntropy": lambda m: m.enable_high_entropy,
    "DisallowStrippedImages": lambda m: m.disallow_stripped_images,
    # Dynamic code
    "ProhibitDynamicCode": lambda m: m.prohibit_dynamic_code,
    "AllowThreadOptOut": lambda m: m.allow_thread_opt_out,
    "AllowRemoteDowngrade": lambda m: m.allow_remote_downgrade,
    "AuditProhibitDynamicCode": lambda m: m.audit_prohibit_dynamic_code,
    # Strict handle checks
    "RaiseExceptionOnInvalidHandleReference": lambda m: m.raise_exception_on_invalid_handle_reference,
    "HandleExceptionsPermanentlyEnabled": lambda m: m.handle_exceptions_permanently_enabled,
    # Win32k system calls
    "DisallowWin32kSystemCalls": lambda m: m.disallow_win32k_system_calls,
    "AuditDisallowWin32kSystemCalls": lambda m: m.audit_disallow_win32k_system_calls,
    # Extension points
    "DisableExtensionPoints": lambda m: m.disable_extension_points,
    # Control flow guard
    "EnableControlFlowGuard": lambda m: m.enable_control_flow_guard,
    "EnableExportSuppression": lambda m: m.enable_export_suppression,
    "StrictMode": lambda m: m.strict_mode,
    # Binary signature
    "MicrosoftSignedOnly": lambda m: m.microsoft_signed_only,
    "StoreSignedOnly": lambda m: m.store_signed_only,
    "MitigationOptIn": lambda m: m.mitigation_opt_in,
    "AuditMicrosoftSignedOnly": lambda m: m.audit_microsoft_signed_only,
    "AuditStoreSignedOnly": lambda m: m.audit_store_signed_only,
    # Fonts
    "DisableNonSystemFonts": lambda m: m.disable_non_system_fonts,
    "AuditNonSystemFontLoading": lambda m: m.audit_non_system_font_loading,
    # Image load
    "NoRemoteImages": lambda m: m.no_remote_images,
    "NoLowMandatoryLabelImages": lambda m: m.no_low_mandatory_label_images,
    "PreferSystem32Images": lambda m: m.prefer_system32_images,
    "AuditNoRemoteImages": lambda m: m.audit_no_remote_images,
    "AuditNoLowMandatoryLabelImages": lambda m: m.audit_no_low_mandatory_label_images,
    # Child processes
    "NoChildProcessCreation": lambda m: m.no_child_process_creation,
    "AuditNoChildProcessCreation": lambda m: m.audit_no_child_process_creation,
    "AllowSecureProcessCreation": lambda m: m.allow_secure_process_creation,
}


def _check_coverage(table: Mapping[str, Accessor]) -> None:
    """Every MitigationRecord field must be registered exactly once."""
    record_fields = {f.name for f in dataclasses.fields(MitigationRecord)}
    if len(table) != len(record_fields):
        raise SchemaError(
            f"mitigation table has {len(table)} entries but "
            f"MitigationRecord has {len(record_fields)} fields"
        )
    probe = MitigationRecord()
    for name, getter in table.items():
        try:
            getter(probe)
        except AttributeError as exc:
            raise SchemaError(f"accessor for {name!r} is broken: {exc}") from exc


def build_schema(table: Optional[Mapping[str, Accessor]] = None) -> Mapping[str, MitigationAttribute]:
    """
    Build the lower-cased name -> MitigationAttribute mapping, ordered by name.

    With no argument the built-in table is used and checked against the
    fields of MitigationRecord; a mismatch raises SchemaError.
    """
    if table is None:
        table = MITIGATION_TABLE
        _check_coverage(table)

    schema: Dict[str, MitigationAttribute] = {}
    for name in sorted(table):
        key = name.lower()
        if key in schema:
            raise SchemaError(
                f"mitigation names collide case-insensitively: "
                f"{schema[key].name!r} and {name!r}"
            )
        schema[key] = MitigationAttribute(name=name, getter=table[name])
    return MappingProxyType(schema)


SCHEMA = build_schema()


def has_any_mitigation_set(
    record: MitigationRecord,
    names: Iterable[str],
    schema: Mapping[str, MitigationAttribute] = SCHEMA,
) -> bool:
    """Return True if any known name in *names* is set on *record*.

    Unknown names are ignored, so an empty or all-unknown *names* gives False.
    """
    for name in names:
        attr = schema.get(name.lower())
        if attr is not None and attr(record):
            return True
    return False
