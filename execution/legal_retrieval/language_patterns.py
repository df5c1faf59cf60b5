"""
Bilingual Pattern Definitions for Legal Retrieval

All regex patterns, word lists and render labels organized by language.
Modules import from here instead of defining patterns inline.
"""

import re

# =============================================================================
# Tokenizer Stop-Words (dropped unless they make up the whole query)
# =============================================================================

STOP_WORDS = {
    "nl": frozenset("""
        van de het een en of voor bij tot aan met uit ter op den der des te
    """.split()),
    "fr": frozenset("""
        du de la le les un une et pour dans sur avec au aux ou par des à
    """.split()),
}

ALL_STOP_WORDS = STOP_WORDS["nl"] | STOP_WORDS["fr"]

# =============================================================================
# Question Stop-Words (for keyword extraction from natural-language questions)
# =============================================================================

QUESTION_STOP_WORDS = {
    "nl": frozenset("""
        wat is de het een op van voor met als in door bij hoe kan mag moet waar
        wanneer welke wie waarom hoeveel zijn mijn ik recht hebben rechten onder
        aan naar tot dit deze die dat jaar jaren
    """.split()),
    "fr": frozenset("""
        que quoi est le la les un une de du des en dans pour par avec comment
        quand quel quelle quels quelles qui pourquoi combien sont mon ma mes je
        droit avoir droits sous sur vers ce cette ces an ans
    """.split()),
}

# Abbreviations kept by keyword extraction despite their length
IMPORTANT_SHORT_WORDS = frozenset("btw rsz cao ziv igo bob rva wet kb mb bw".split())

# =============================================================================
# Language Detection (NL vs FR question text)
# =============================================================================

LANGUAGE_INDICATORS = {
    "nl": {
        "words": frozenset("""
            wat hoe wanneer waar waarom welke wie kan mag moet zou heb heeft zijn
            mijn het de een van voor met bij ik ben dit dat deze die tijd werk
            dagen jaren maanden hoeveel welk
        """.split()),
        "boosters": [
            (re.compile(r"\b(arbeidsovereenkomst|opzegtermijn|ontslag|werkgever|werknemer|vakantie|pensioen|werkloosheid|echtscheiding|erfenis|vennootschap|huurder|verhuurder|boete)\b"), 2),
            (re.compile(r"\b(ik ben|ik heb|ik wil|mijn rechten|hoe lang|mag ik|kan ik|moet ik|heb ik recht)\b"), 1),
        ],
    },
    "fr": {
        "words": frozenset("""
            quel quelle quand comment pourquoi combien est-ce que puis-je ai-je le
            la les des une un pour avec dans sur je suis mon ma mes
        """.split()),
        "boosters": [
            (re.compile(r"\b(licenciement|préavis|congé|employeur|salarié|retraite|chômage|divorce|succession|société|consommateur|loyer|locataire|propriétaire|amende)\b"), 2),
            (re.compile(r"\b(je suis|j'ai|je veux|mes droits|est-ce que|puis-je|ai-je|combien de|quelle est|quelles sont|y a-t-il)\b"), 1),
        ],
    },
}

# =============================================================================
# Follow-up Detection Patterns (anaphora and continuation markers)
# =============================================================================

FOLLOWUP_PATTERNS = {
    "nl": [
        re.compile(r"^(wat|welke|hoe|wanneer|waar|wie|waarom)\s+(zijn|is|moet|kan|mag)\s+(die|dat|deze|dit|ze|het)", re.IGNORECASE),
        re.compile(r"^(en|maar|of|dus)\s", re.IGNORECASE),
        re.compile(r"^(meer|verder|specifiek|detail)", re.IGNORECASE),
        re.compile(r"\b(die|dat|deze|dit|ervan|erbij|erover|hierover|daarover)\b", re.IGNORECASE),
        re.compile(r"^(leg uit|vertel meer|geef meer|kun je|kunt u)", re.IGNORECASE),
        re.compile(r"^(wat bedoel|wat betekent|wat houdt)", re.IGNORECASE),
        re.compile(r"\b(de regels|de wet|de voorwaarden|de procedure)\b", re.IGNORECASE),
    ],
    "fr": [
        re.compile(r"^(qu'est-ce|quelles?|comment|quand|où|qui|pourquoi)\s+(sont|est|dois|peut|faut)\s+(ces?|cette?|cela|ça)", re.IGNORECASE),
        re.compile(r"^(et|mais|ou|donc)\s", re.IGNORECASE),
        re.compile(r"^(plus|encore|spécifiquement|en détail)", re.IGNORECASE),
        re.compile(r"\b(ces?|cette?|cela|ça|en|y|là-dessus)\b", re.IGNORECASE),
        re.compile(r"^(expliquez|dites-moi|donnez-moi|pouvez-vous)", re.IGNORECASE),
        re.compile(r"^(que signifie|qu'entendez|que veut dire)", re.IGNORECASE),
        re.compile(r"\b(les règles|la loi|les conditions|la procédure)\b", re.IGNORECASE),
    ],
}

# =============================================================================
# Score Fusion Patterns (penalties)
# =============================================================================

# Crisis-era and temporary measures
TEMPORARY_MEASURE_PATTERN = re.compile(
    r"covid|corona|pandemie|tijdelijke.*2020|tijdelijke.*2021", re.IGNORECASE
)

# Passage text announcing its own abolition
ABOLITION_TEXT_PATTERN = re.compile(r"\b(opgeheven|abrogé|afgeschaft|geschrapt)\b", re.IGNORECASE)

# Wider variant used for the render warning
ABOLITION_WARNING_PATTERN = re.compile(
    r"\b(opgeheven|abrogé|afgeschaft|geschrapt|vervallen)\b", re.IGNORECASE
)

# Joint-committee and collective-agreement references
SECTOR_AGREEMENT_PATTERNS = [
    re.compile(r"paritair comit[eé]", re.IGNORECASE),
    re.compile(r"paritair subcomit[eé]", re.IGNORECASE),
    re.compile(r"collectieve arbeidsovereenkomst", re.IGNORECASE),
    re.compile(r"convention collective", re.IGNORECASE),
    re.compile(r"commission paritaire", re.IGNORECASE),
    re.compile(r"sous-commission paritaire", re.IGNORECASE),
    re.compile(r"pc\s*\d+", re.IGNORECASE),
    re.compile(r"cp\s*\d+", re.IGNORECASE),
]

# Only count when the title also reads as an agreement
SECTOR_KEYWORDS = (
    "hardsteengroeven", "kwartsietgroeven", "zandsteen",
    "warenhuizen", "groothandelaar",
    "voedingsnijverheid", "bakkerijen",
    "textielnijverheid", "kleding",
    "metaal", "garage", "carrosserie",
    "bouw", "hout", "meubel",
    "haven", "scheepvaart", "luchtvaart",
    "hotels", "horeca", "toerisme",
)

AGREEMENT_TITLE_MARKERS = ("overeenkomst", "convention")

# Question topic -> words expected in the title of a relevant law
TOPIC_TITLE_KEYWORDS = {
    "ontslag": ("arbeid", "ontslag", "werk"),
    "opzeg": ("arbeid", "ontslag", "opzeg"),
    "vakantie": ("vakantie", "arbeid", "werk", "verlof"),
    "huur": ("huur", "woning", "woon", "verhuur"),
    "belasting": ("belasting", "fiscaal", "btw", "inkomsten"),
    "echtscheiding": ("echtscheiding", "huwelijk", "burgerlijk"),
    "erfenis": ("erfenis", "successie", "nalatenschap", "burgerlijk"),
    "vennootschap": ("vennootschap", "onderneming", "economisch"),
    "straf": ("straf", "boete", "sanctie", "verkeer"),
    "rijbewijs": ("verkeer", "rijbewijs", "wegverkeer"),
    "werkloosheid": ("werkloosheid", "uitkering", "sociale"),
    "pensioen": ("pensioen", "sociale", "zekerheid"),
    "kinderbijslag": ("kind", "gezin", "groeipakket"),
    "garantie": ("consument", "garantie", "economisch"),
}

# =============================================================================
# Render Labels
# =============================================================================

LABELS = {
    "nl": {
        "source": "Bron",
        "legislation": "WET",
        "jurisprudence": "RECHTSPRAAK",
        "parliamentary": "PARLEMENTAIRE VOORBEREIDING",
        "tax": "FISCALITEIT",
        "abolished": "[OPGEHEVEN/ABROGÉ]",
        "decrees": "[HEEFT {count} UITVOERINGSBESLUITEN]",
        "modifications": "[GEWIJZIGD DOOR {count} WETTEN]",
        "has_abolitions": "[BEVAT OPGEHEVEN BEPALINGEN - controleer actuele status]",
        "abolition_text": "[BEPALING MOGELIJK OPGEHEVEN - controleer actuele status]",
        "law": "Wet",
        "court": "Hof",
        "date": "Datum",
        "parliament": "Parlement",
        "article": "Artikel",
        "title": "Titel",
        "dossier": "Dossier",
        "sources_header": "BRONNEN (let op: kunnen verouderde info bevatten):",
        "no_answer": (
            "Ik heb geen relevante informatie gevonden in de Belgische wetgeving "
            "om deze vraag te beantwoorden."
        ),
    },
    "fr": {
        "source": "Source",
        "legislation": "LOI",
        "jurisprudence": "JURISPRUDENCE",
        "parliamentary": "TRAVAUX PRÉPARATOIRES",
        "tax": "FISCALITÉ",
        "abolished": "[OPGEHEVEN/ABROGÉ]",
        "decrees": "[{count} ARRÊTÉS D'EXÉCUTION]",
        "modifications": "[MODIFIÉ PAR {count} LOIS]",
        "has_abolitions": "[CONTIENT DES DISPOSITIONS ABROGÉES - vérifiez le statut actuel]",
        "abolition_text": "[DISPOSITION PEUT-ÊTRE ABROGÉE - vérifiez le statut actuel]",
        "law": "Loi",
        "court": "Cour",
        "date": "Date",
        "parliament": "Parlement",
        "article": "Article",
        "title": "Titre",
        "dossier": "Dossier",
        "sources_header": "SOURCES (attention : peuvent contenir des informations obsolètes) :",
        "no_answer": (
            "Je n'ai pas trouvé d'informations pertinentes dans la législation belge "
            "pour répondre à cette question."
        ),
    },
}

PARLIAMENT_NAMES = {
    "kamer": "Kamer",
    "senaat": "Senaat",
    "vlaams": "Vlaams Parlement",
    "brussels": "Brussels Parlement",
    "waals": "Waals Parlement",
}

# =============================================================================
# Topic Notices (prepended to the rendered context)
# =============================================================================

TOPIC_NOTICES = [
    (
        ("proefperiode", "proeftijd"),
        "KRITIEKE CONTEXT: de proefperiode voor gewone arbeidsovereenkomsten is afgeschaft "
        "sinds 1 januari 2014 (Wet Eenheidsstatuut). Een proefperiode geldt nog enkel voor "
        "uitzendarbeid en studentenovereenkomsten.",
    ),
    (
        ("carensdag",),
        "KRITIEKE CONTEXT: de carensdag is afgeschaft sinds 1 januari 2014. De eerste "
        "ziektedag wordt betaald (gewaarborgd loon vanaf dag 1).",
    ),
    (
        ("registratierecht", "kinderbijslag", "groeipakket", "huur", "woninghuur",
         "erfbelasting", "successie", "onroerende voorheffing", "premie", "renovatie"),
        "REGIONAAL ONDERWERP: Vlaanderen, Wallonië en Brussel hebben elk eigen regels. "
        "Vermeld de verschillen tussen de drie gewesten.",
    ),
]
