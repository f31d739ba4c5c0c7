"""
Static vocabularies for the curated suggestion sources.

The portal indexes French administrative and regulatory documents,
so the word lists are in French.
"""

# Frequently searched document types and topics
POPULAR_TERMS = [
    "décret",
    "décret d'application",
    "projet de décret",
    "loi",
    "loi de finances",
    "loi organique",
    "projet de loi",
    "arrêté",
    "arrêté ministériel",
    "arrêté préfectoral",
    "arrêté interministériel",
    "règlement",
    "règlement intérieur",
    "ordonnance",
    "circulaire",
    "note de service",
    "instruction",
    "ministère",
    "ministère de l'intérieur",
    "ministère des finances",
    "budget",
    "budget prévisionnel",
    "rapport annuel",
    "rapport d'activité",
    "procès-verbal",
    "compte rendu",
    "convention",
    "contrat",
    "marché public",
    "appel d'offres",
    "cahier des charges",
    "délibération",
    "avis",
    "décision",
    "journal officiel",
    "code du travail",
    "fonction publique",
    "statut général",
    "nomination",
    "organigramme",
]

# trigger pattern (regex, case-insensitive) -> (related phrases, note)
CONTEXT_PATTERNS = {
    r"d[ée]cret": (
        [
            "décret d'application",
            "décret en conseil d'état",
            "décret portant nomination",
            "décret portant organisation",
            "décret modificatif",
        ],
        "Textes réglementaires liés aux décrets",
    ),
    r"\blois?\b": (
        [
            "loi de finances",
            "loi de finances rectificative",
            "loi organique",
            "loi portant statut général",
            "projet de loi",
            "proposition de loi",
        ],
        "Textes législatifs",
    ),
    r"arr[êe]t[ée]": (
        [
            "arrêté ministériel",
            "arrêté interministériel",
            "arrêté préfectoral",
            "arrêté de nomination",
            "arrêté portant délégation de signature",
        ],
        "Actes administratifs",
    ),
    r"budg": (
        [
            "budget prévisionnel",
            "budget de l'état",
            "budget de fonctionnement",
            "budget d'investissement",
            "exécution du budget",
        ],
        "Documents budgétaires et financiers",
    ),
    r"minist": (
        [
            "ministère des finances",
            "ministère de l'intérieur",
            "ministère de la justice",
            "ministère de la santé",
            "organigramme du ministère",
        ],
        "Administrations centrales",
    ),
    r"march[ée]": (
        [
            "marché public",
            "marchés publics",
            "code des marchés publics",
            "attribution de marché",
        ],
        "Commande publique",
    ),
    r"rapport": (
        [
            "rapport annuel",
            "rapport d'activité",
            "rapport de performance",
            "rapport d'audit",
        ],
        "Rapports et bilans",
    ),
}

# common misspelling -> correction
SPELLING_CORRECTIONS = {
    "decret": "décret",
    "dècret": "décret",
    "arrete": "arrêté",
    "arreté": "arrêté",
    "reglement": "règlement",
    "réglement": "règlement",
    "ministere": "ministère",
    "ministére": "ministère",
    "budjet": "budget",
    "bugdet": "budget",
    "circulère": "circulaire",
    "ordonance": "ordonnance",
    "deliberation": "délibération",
    "délibèration": "délibération",
    "proces verbal": "procès-verbal",
    "proces-verbal": "procès-verbal",
    "apel d'offre": "appel d'offres",
    "fonction publque": "fonction publique",
}

# Appended to the query when the pipeline cannot rank anything
FALLBACK_TEMPLATES = [
    "{query} décret",
    "{query} loi",
    "{query} arrêté",
    "{query} règlement",
    "{query} ministère",
]
