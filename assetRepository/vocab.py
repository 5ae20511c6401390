from __future__ import annotations

"""Controlled vocabulary for the asset repository.

This module is the single source of truth for language, format and
relationship tokens, and for the namespace strings used when the index is
backed by a triple store.
"""

from rdflib import Namespace

# Canonical namespaces (normative).
SCHEMA_NS = "https://assets.example.org/schema#"
ASSET_NS = "https://assets.example.org/assets/"
REL_NS = "https://assets.example.org/rel/"
ANNOTATION_NS = "https://assets.example.org/annotation/"
API4KP_NS = "https://www.omg.org/spec/API4KP/api4kp/"

# rdflib Namespace helpers.
KMD = Namespace(SCHEMA_NS)
REL = Namespace(REL_NS)
ANN = Namespace(ANNOTATION_NS)
API4KP = Namespace(API4KP_NS)

# Knowledge representation languages.
KNART = "KNART"
HTML = "HTML"
ELM = "ELM"
CQL = "CQL"
DMN = "DMN"
BPMN = "BPMN"
OWL = "OWL"
SURROGATE = "KNOWLEDGE_ASSET_SURROGATE"

# Serialization formats.
XML = "XML"
JSON = "JSON"
TXT = "TXT"
TTL = "TTL"

# Relationship kinds.
IMPORTS = "Imports"
DEPENDS_ON = "DependsOn"
IS_TRANSCREATION_OF = "IsTranscreationOf"

# Artifact version tag used for carriers registered by locator only.
EMBEDDED_VERSION = "EMBEDDED"

__all__ = [
    "SCHEMA_NS",
    "ASSET_NS",
    "REL_NS",
    "ANNOTATION_NS",
    "API4KP_NS",
    "KMD",
    "REL",
    "ANN",
    "API4KP",
    "KNART",
    "HTML",
    "ELM",
    "CQL",
    "DMN",
    "BPMN",
    "OWL",
    "SURROGATE",
    "XML",
    "JSON",
    "TXT",
    "TTL",
    "IMPORTS",
    "DEPENDS_ON",
    "IS_TRANSCREATION_OF",
    "EMBEDDED_VERSION",
]
