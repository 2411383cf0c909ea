"""
Built-in prompt-injection patterns.

All patterns are compiled case-insensitively at import and never mutated.
Callers add their own through Policy.injection_patterns.
"""

import re

_PATTERN_SOURCES = (
    # Instruction override
    r"ignore\s+(?:all\s+)?(?:of\s+)?(?:the\s+|your\s+)?(?:previous|prior|above|earlier)\s+"
    r"(?:instructions|prompts|rules|directions|messages)",
    r"disregard\s+(?:all\s+)?(?:of\s+)?(?:the\s+|your\s+)?(?:previous|prior|above|earlier)\s+"
    r"(?:instructions|prompts|rules|directions|messages)",
    r"forget\s+(?:all\s+)?(?:of\s+)?(?:your|the)\s+(?:previous\s+|prior\s+)?(?:instructions|rules|training)",
    r"override\s+(?:your|the)\s+(?:system\s+)?(?:instructions|prompt|rules)",
    r"\[\s*system\s+override\s*\]",
    # System prompt extraction
    r"(?:show|reveal|print|display|tell|repeat)\s+(?:me\s+)?(?:your|the)\s+"
    r"(?:system\s+prompt|initial\s+instructions|hidden\s+instructions|original\s+instructions)",
    # Model-specific control tokens
    r"\[/?INST\]",
    r"<\|(?:system|user|assistant)\|>",
    r"<\|im_(?:start|end)\|>",
    r"<</?SYS>>",
    r"<\|(?:begin|end)_of_text\|>",
    # Multi-language instruction override
    r"ignore[zr]?\s+(?:toutes\s+)?(?:les\s+)?instructions\s+pr[eé]c[eé]dentes",
    r"ignorier(?:e|en)?\s+(?:alle\s+)?(?:vorherigen|bisherigen|vorigen)\s+anweisungen",
    r"ignora\s+(?:tutte\s+)?le\s+istruzioni\s+precedenti",
    r"ignora\s+(?:todas\s+)?las\s+instrucciones\s+anteriores",
    r"ignore\s+(?:todas\s+)?as\s+instru[çc][õo]es\s+anteriores",
    # Zero-width character clusters
    r"[\u200B\u200C\u200D\u2060\uFEFF]{3,}",
    # Role and persona hijack
    r"you\s+are\s+now\s+in\s+(?:developer|dev|god|admin|debug)\s+mode",
    r"(?:enter|enable|activate|switch\s+to)\s+(?:jailbreak|dan|developer)\s+mode",
    r"\bDAN\s+mode\b",
    r"\bdo\s+anything\s+now\b",
    r"you\s+are\s+no\s+longer\s+(?:a|an|bound|restricted)",
    r"pretend\s+(?:that\s+)?you\s+(?:are|have)\s+(?:no|not)\s+(?:restrictions|rules|guidelines|limits)",
    r"act\s+as\s+(?:an?\s+)?(?:unfiltered|unrestricted|jailbroken|uncensored)",
)

DEFAULT_INJECTION_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(source, re.IGNORECASE) for source in _PATTERN_SOURCES
)

# Characters counted by the obfuscation heuristic
BRACKET_CHARS = frozenset("[]{}")
BRACKET_THRESHOLD = 20
