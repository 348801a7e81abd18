#!/usr/bin/env python3

"""
Repeat family taxonomy.

Holds the ordered set of RepeatMasker class labels a curator is expected to
pick from and groups them into top-level families for display. The index is
advisory: an unknown class is reported, never rejected.
"""

from typing import Dict, Iterable, List, Tuple


UNCLASSIFIED = "NoClass"
AMBIGUOUS_MARK = "?"

REPEAT_CLASSES: Tuple[str, ...] = (
    "ARTEFACT",
    "DNA",
    "DNA/Academ",
    "DNA/CMC-Chapaev",
    "DNA/CMC-Chapaev-3",
    "DNA/CMC-EnSpm",
    "DNA/CMC-Mirage",
    "DNA/CMC-Transib",
    "DNA/Chapaev",
    "DNA/Crypton",
    "DNA/Ginger",
    "DNA/Harbinger",
    "DNA/Kolobok",
    "DNA/Kolobok-Hydra",
    "DNA/Kolobok-T2",
    "DNA/MULE-F",
    "DNA/MULE-MuDR",
    "DNA/MULE-NOF",
    "DNA/Maverick",
    "DNA/Merlin",
    "DNA/Novosib",
    "DNA/P",
    "DNA/P-Fungi",
    "DNA/PIF-Harbinger",
    "DNA/PIF-ISL2EU",
    "DNA/PiggyBac",
    "DNA/Sola",
    "DNA/TcMar",
    "DNA/TcMar-Ant1",
    "DNA/TcMar-Fot1",
    "DNA/TcMar-Gizmo",
    "DNA/TcMar-ISRm11",
    "DNA/TcMar-Mariner",
    "DNA/TcMar-Mogwai",
    "DNA/TcMar-Pogo",
    "DNA/TcMar-Sagan",
    "DNA/TcMar-Stowaway",
    "DNA/TcMar-Tc1",
    "DNA/TcMar-Tc2",
    "DNA/TcMar-Tc4",
    "DNA/TcMar-Tigger",
    "DNA/TcMar-m44",
    "DNA/Transib",
    "DNA/Zator",
    "DNA/Zisupton",
    "DNA/hAT",
    "DNA/hAT-Ac",
    "DNA/hAT-Blackjack",
    "DNA/hAT-Charlie",
    "DNA/hAT-Pegasus",
    "DNA/hAT-Restless",
    "DNA/hAT-Tag1",
    "DNA/hAT-Tip100",
    "DNA/hAT-Tol2",
    "DNA/hAT-hAT1",
    "DNA/hAT-hAT5",
    "DNA/hAT-hATm",
    "DNA/hAT-hATw",
    "DNA/hAT-hATx",
    "DNA/hAT-hobo",
    "LINE",
    "LINE/Ambal",
    "LINE/CR1",
    "LINE/CR1-Zenon",
    "LINE/CRE",
    "LINE/DRE",
    "LINE/Dong-R4",
    "LINE/Genie",
    "LINE/I",
    "LINE/Jockey",
    "LINE/L1",
    "LINE/L1-Tx1",
    "LINE/L2",
    "LINE/L2-Hydra",
    "LINE/LOA",
    "LINE/Odin",
    "LINE/Penelope",
    "LINE/Proto1",
    "LINE/Proto2",
    "LINE/R1",
    "LINE/R2",
    "LINE/R2-Hero",
    "LINE/RTE",
    "LINE/RTE-BovB",
    "LINE/RTE-RTE",
    "LINE/RTE-X",
    "LINE/Rex-Babar",
    "LINE/Tad1",
    "LINE/Zorro",
    "LINE/telomeric",
    "LTR",
    "LTR/Caulimovirus",
    "LTR/Copia",
    "LTR/Copia(Xen1)",
    "LTR/DIRS",
    "LTR/ERV",
    "LTR/ERV-Foamy",
    "LTR/ERV-Lenti",
    "LTR/ERV1",
    "LTR/ERVK",
    "LTR/ERVL",
    "LTR/ERVL-MaLR",
    "LTR/Gypsy",
    "LTR/Gypsy-Troyka",
    "LTR/Ngaro",
    "LTR/Pao",
    "LTR/TATE",
    "LTR/Viper",
    "Low_complexity",
    "Other",
    "Other/Composite",
    "Other/DNA_virus",
    "Other/centromeric",
    "Other/subtelomeric",
    "RC/Helitron",
    "RNA",
    "Retroposon",
    "SINE",
    "SINE/5S",
    "SINE/7SL",
    "SINE/Alu",
    "SINE/B2",
    "SINE/B4",
    "SINE/BovA",
    "SINE/C",
    "SINE/CORE",
    "SINE/Deu",
    "SINE/Dong-R4",
    "SINE/I",
    "SINE/ID",
    "SINE/L1",
    "SINE/L2",
    "SINE/MIR",
    "SINE/Mermaid",
    "SINE/R1",
    "SINE/R2",
    "SINE/RTE",
    "SINE/RTE-BovB",
    "SINE/Salmon",
    "SINE/Sauria",
    "SINE/V",
    "SINE/tRNA",
    "SINE/tRNA-7SL",
    "SINE/tRNA-CR1",
    "SINE/tRNA-Glu",
    "SINE/tRNA-L2",
    "SINE/tRNA-Lys",
    "SINE/tRNA-R2",
    "SINE/tRNA-RTE",
    "Satellite",
    "Satellite/W-chromosome",
    "Satellite/Y-chromosome",
    "Satellite/acromeric",
    "Satellite/centromeric",
    "Satellite/macro",
    "Satellite/subtelomeric",
    "Satellite/telomeric",
    "Segmental",
    "Simple_repeat",
    "Unknown",
    "Unknown/Y-chromosome",
    "Unknown/centromeric",
    "rRNA",
    "scRNA",
    "snRNA",
    "tRNA",
    UNCLASSIFIED,
)

# Prefix-matched groups; longest prefix wins
PREFIX_GROUPS: Tuple[str, ...] = (
    "DNA/hAT",
    "DNA/TcMar",
    "DNA",
    "LINE",
    "LTR",
    "SINE",
    "Satellite",
    "Unknown",
)
RNA_GROUP = "RNA"
RNA_FAMILIES = frozenset({"RNA", "rRNA", "scRNA", "snRNA", "tRNA"})
OTHER_GROUP = "Other"

TOP_LEVEL_GROUPS: Tuple[str, ...] = PREFIX_GROUPS + (RNA_GROUP, OTHER_GROUP, UNCLASSIFIED)


def strip_ambiguity(class_label: str) -> str:
    """Drop a trailing ambiguity mark from a class label."""
    return class_label.rstrip(AMBIGUOUS_MARK)


class TaxonomyIndex:
    """Static ordered set of permitted repeat classes."""

    def __init__(self, classes: Iterable[str] = REPEAT_CLASSES):
        self._classes: List[str] = []
        seen = set()
        for repeat_class in classes:
            if repeat_class not in seen:
                seen.add(repeat_class)
                self._classes.append(repeat_class)
        self._known = frozenset(self._classes)
        # Longest prefixes are tried first
        self._prefixes = sorted(PREFIX_GROUPS, key=len, reverse=True)

    def __contains__(self, class_label: str) -> bool:
        return self.is_known(class_label)

    def __len__(self) -> int:
        return len(self._classes)

    def classes(self) -> List[str]:
        """Get the permitted classes in their canonical order."""
        return list(self._classes)

    def is_known(self, class_label: str) -> bool:
        """Check whether a class (ignoring any ambiguity mark) is permitted."""
        return strip_ambiguity(class_label) in self._known

    def classify(self, class_label: str) -> str:
        """Map a raw class label to its top-level group."""
        label = strip_ambiguity(class_label)
        if label == UNCLASSIFIED or not label:
            return UNCLASSIFIED
        for prefix in self._prefixes:
            if label.startswith(prefix):
                return prefix
        if label in RNA_FAMILIES:
            return RNA_GROUP
        return OTHER_GROUP

    def groups(self) -> List[str]:
        """Get the top-level group names in display order."""
        return list(TOP_LEVEL_GROUPS)

    def members(self, group: str) -> List[str]:
        """Get the permitted classes belonging to a top-level group."""
        return [c for c in self._classes if self.classify(c) == group]

    def grouped_classes(self) -> Dict[str, List[str]]:
        """Get every top-level group with its permitted classes."""
        grouped: Dict[str, List[str]] = {group: [] for group in TOP_LEVEL_GROUPS}
        for repeat_class in self._classes:
            grouped[self.classify(repeat_class)].append(repeat_class)
        return grouped
