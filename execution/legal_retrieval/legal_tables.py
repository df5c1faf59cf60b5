"""
Static Legal Lookup Tables

Bilingual thesaurus, foundational-document registry, trigger-keyword map and
keyword expansion table. Everything is wrapped in read-only mappings at import
time; request handling only ever reads from them.
"""

import re
from types import MappingProxyType


def _freeze(table: dict) -> MappingProxyType:
    return MappingProxyType({key: tuple(value) for key, value in table.items()})


# =============================================================================
# Bilingual Legal Thesaurus (NL <-> FR)
# =============================================================================

LEGAL_SYNONYMS = _freeze({
    # Judgment types
    "vonnis": ["jugement"],
    "jugement": ["vonnis"],
    "arrest": ["arrêt"],
    "arrêt": ["arrest"],
    "beschikking": ["ordonnance"],
    "ordonnance": ["beschikking"],
    # Appeal procedures
    "beroep": ["appel"],
    "appel": ["beroep"],
    "cassatie": ["cassation", "pourvoi"],
    "cassation": ["cassatie"],
    "verzet": ["opposition"],
    "opposition": ["verzet"],
    # Service and notification
    "betekening": ["signification"],
    "signification": ["betekening"],
    "kennisgeving": ["notification"],
    "notification": ["kennisgeving"],
    "dagvaarding": ["citation", "assignation"],
    "citation": ["dagvaarding"],
    # Parties
    "eiser": ["demandeur"],
    "demandeur": ["eiser"],
    "verweerder": ["défendeur"],
    "défendeur": ["verweerder"],
    # Courts
    "rechtbank": ["tribunal"],
    "tribunal": ["rechtbank"],
    "hof": ["cour"],
    "cour": ["hof"],
    "raad": ["conseil"],
    "conseil": ["raad"],
    # Codes
    "wetboek": ["code"],
    "code": ["wetboek"],
    "grondwet": ["constitution"],
    "constitution": ["grondwet"],
    # Document types
    "wet": ["loi"],
    "loi": ["wet"],
    "decreet": ["décret"],
    "décret": ["decreet"],
    "besluit": ["arrêté"],
    "arrêté": ["besluit"],
    "verordening": ["règlement", "ordonnance"],
    "règlement": ["verordening"],
})

# =============================================================================
# Foundational Documents (generic statutes boosted over sector agreements)
# =============================================================================

FOUNDATIONAL_DOCUMENTS = MappingProxyType({
    # Old Civil Code (1804)
    "1804032150": "Oud BW Boek I - Personen",
    "1804032151": "Oud BW Boek II - Goederen/Eigendom",
    "1804032152": "Oud BW Boek III - Erfopvolging",
    "1804032153": "Oud BW Boek III - Schenkingen/Testamenten",
    "1804032154": "Oud BW Boek III - Verbintenissen/Contracten",
    "1804032155": "Oud BW Boek III - Bijzondere overeenkomsten",
    "1804032156": "Oud BW Boek III - Huwelijksvermogen",
    # New Civil Code
    "2022A32057": "Nieuw BW Boek 1 - Algemene bepalingen",
    "2020A20347": "Nieuw BW Boek 3 - Goederen",
    "2022A32058": "Nieuw BW Boek 5 - Verbintenissen",
    "2019A12168": "Nieuw BW Boek 8 - Bewijs",
    "2022A30600": "Nieuw BW Boek 2 - Relatievermogensrecht",
    "2022B30600": "BW Boek 4 - Erfrecht",
    "1976071406": "Wet huwelijksvermogen",
    # Procedure
    "1967101052": "Gerechtelijk Wetboek",
    # Criminal
    "1867060850": "Strafwetboek",
    "1808111701": "Wetboek van Strafvordering",
    "2010A09589": "Sociaal Strafwetboek",
    # Constitutional
    "1994021048": "Grondwet",
    # Labour
    "1971031602": "Arbeidswet",
    "1978070303": "Arbeidsovereenkomstenwet",
    "1971062850": "Jaarlijkse vakantiewet",
    "1996012650": "Welzijnswet",
    "1963082803": "KB Klein verlet",
    "1965041207": "Loonbeschermingswet",
    "1974010407": "Feestdagenwet",
    "1968120503": "Wet CAO en PC",
    "1987012597": "Uitzendarbeidswet",
    "2007002098": "Genderwet",
    "2007002099": "Antidiscriminatiewet",
    "2001013224": "KB Tijdskrediet",
    "1948092002": "Wet ondernemingsraden",
    "2010201753": "KB SWT (brugpensioen)",
    "1971041001": "Arbeidsongevallenwet",
    # Corporate and economic
    "2019A40586": "Wetboek van vennootschappen en verenigingen",
    "2013A11134": "Wetboek economisch recht",
    # Tax
    "1993082751": "WIB92 (KB uitvoering)",
    "1969070305": "BTW-Wetboek",
    "2013036154": "Vlaamse Codex Fiscaliteit",
    # Housing
    "2018015087": "Vlaams Woninghuurdecreet",
    "2013A31614": "Brusselse Huisvestingscode",
    "1951043003": "Handelshuurwet",
    "1969110450": "Pachtwet",
    # Social security
    "1991013192": "Werkloosheidsbesluit",
    "1994071450": "Wet ziekteverzekering (ZIV)",
    "2002022559": "Leefloonwet",
    "1967102704": "KB kinderbijslag werknemers",
    "1967061510": "KB uitkeringen werknemers",
    "2001022201": "Wet IGO",
    "1967072702": "KB nr 38 zelfstandigen",
    # Other
    "1921022450": "Drugswet",
    "1980121550": "Vreemdelingenwet",
    "2007000528": "Camerawet",
})

# =============================================================================
# Trigger Keywords (question term -> foundational document ids)
# =============================================================================

TRIGGER_KEYWORDS = _freeze({
    # Employment contracts (NL)
    "opzegtermijn": ["1978070303"],
    "opzeg": ["1978070303"],
    "ontslag": ["1978070303", "2010A09589"],
    "kennelijk onredelijk": ["1978070303"],
    "opzegging": ["1978070303"],
    "dringende reden": ["1978070303"],
    "arbeidsovereenkomst": ["1978070303"],
    "concurrentiebeding": ["1978070303"],
    "proefperiode": ["1978070303"],
    "proeftijd": ["1978070303"],
    "anciënniteit": ["1978070303"],
    "ziekteverlof": ["1978070303"],
    "ziekte": ["1978070303", "1994071450"],
    "outplacement": ["1978070303"],
    "scholingsbeding": ["1978070303"],
    "schorsing": ["1978070303"],
    "ontslagvergoeding": ["1978070303"],
    "beschermde werknemer": ["1978070303"],
    # Employment contracts (FR)
    "préavis": ["1978070303"],
    "licenciement": ["1978070303", "2010A09589"],
    "contrat de travail": ["1978070303"],
    "non-concurrence": ["1978070303"],
    "période d'essai": ["1978070303"],
    "ancienneté": ["1978070303"],
    # Working time
    "werktijd": ["1971031602"],
    "arbeidsduur": ["1971031602"],
    "overuren": ["1971031602"],
    "nachtarbeid": ["1971031602"],
    "werkweek": ["1971031602"],
    "zwangerschapsverlof": ["1971031602", "1978070303"],
    "moederschapsverlof": ["1971031602", "1978070303"],
    "vaderschapsverlof": ["1971031602", "1978070303"],
    "geboorteverlof": ["1971031602", "1978070303"],
    "adoptieverlof": ["1978070303", "1971031602"],
    "temps de travail": ["1971031602"],
    "durée du travail": ["1971031602"],
    "heures supplémentaires": ["1971031602"],
    "travail de nuit": ["1971031602"],
    "congé de maternité": ["1971031602"],
    "congé de paternité": ["1971031602"],
    # Vacation and leave
    "vakantie": ["1971062850"],
    "vakantiedagen": ["1971062850"],
    "verlof": ["1971062850", "1963082803"],
    "klein verlet": ["1963082803"],
    "rouwverlof": ["1963082803"],
    "congé": ["1971062850", "1963082803"],
    "vacances": ["1971062850"],
    "petit chômage": ["1963082803"],
    "congé de deuil": ["1963082803"],
    # Wellbeing at work
    "welzijn": ["1996012650"],
    "veiligheid": ["1996012650"],
    "preventie": ["1996012650"],
    "risicoanalyse": ["1996012650"],
    "pesten": ["1996012650"],
    "pestgedrag": ["1996012650"],
    "ongewenst gedrag": ["1996012650"],
    "burnout": ["1996012650"],
    "bien-être": ["1996012650"],
    "harcèlement": ["1996012650"],
    "risques psychosociaux": ["1996012650"],
    # Criminal law
    "straf": ["1867060850"],
    "misdrijf": ["1867060850"],
    "diefstal": ["1867060850"],
    "werkstraf": ["1867060850"],
    "probatie": ["1867060850"],
    "verjaring": ["1867060850", "1808111701"],
    "huiszoeking": ["1808111701"],
    "strafprocedure": ["1808111701"],
    "voorhechtenis": ["1808111701"],
    "salduz": ["1808111701"],
    "minnelijke schikking": ["1808111701"],
    "peine": ["1867060850"],
    "délit": ["1867060850"],
    "sursis": ["1867060850"],
    "perquisition": ["1808111701"],
    "procédure pénale": ["1808111701"],
    "zwartwerk": ["2010A09589"],
    "sociale fraude": ["2010A09589"],
    "travail au noir": ["2010A09589"],
    # Civil law
    "contract": ["1804032154", "2022A32058"],
    "overeenkomst": ["1804032154", "2022A32058"],
    "verbintenis": ["1804032154", "2022A32058"],
    "eigendom": ["1804032151", "2020A20347"],
    "erfenis": ["1804032152", "1804032153", "2022B30600"],
    "erfrecht": ["1804032152", "1804032153", "2022B30600"],
    "erfopvolging": ["1804032152", "1804032153", "2022B30600"],
    "testament": ["1804032153", "2022B30600"],
    "schenking": ["1804032153", "2022B30600"],
    "erfgenaam": ["1804032152", "2022B30600"],
    "nalatenschap": ["1804032152", "2022B30600"],
    "huwelijksvermogen": ["1804032156", "1976071406", "2022A30600"],
    "huwelijkscontract": ["1976071406", "1804032156"],
    "echtscheiding": ["1804032150", "2022A30600"],
    "samenwoning": ["2022A30600"],
    "bewijs": ["2019A12168"],
    "co-ouderschap": ["1804032150"],
    "ouderlijk gezag": ["1804032150"],
    "alimentatie": ["1804032150"],
    "onderhoudsgeld": ["1804032150"],
    "adoptie": ["1804032150"],
    "afstamming": ["1804032150"],
    "voogdij": ["1804032150"],
    "contrat": ["1804032154", "2022A32058"],
    "obligation": ["1804032154", "2022A32058"],
    "propriété": ["1804032151", "2020A20347"],
    "succession": ["1804032152", "1804032153", "2022B30600"],
    "héritage": ["1804032152", "1804032153", "2022B30600"],
    "donation": ["1804032153", "2022B30600"],
    "régime matrimonial": ["1804032156", "1976071406"],
    "divorce": ["1804032150", "2022A30600"],
    "preuve": ["2019A12168"],
    "pension alimentaire": ["1804032150"],
    "filiation": ["1804032150"],
    # Rental
    "huur": ["2018015087", "2013A31614"],
    "verhuurder": ["2018015087", "2013A31614"],
    "huurder": ["2018015087", "2013A31614"],
    "huurwaarborg": ["2018015087"],
    "handelshuur": ["1951043003"],
    "pacht": ["1969110450"],
    "locataire": ["2018015087", "2013A31614"],
    "bailleur": ["2018015087", "2013A31614"],
    "loyer": ["2018015087", "2013A31614"],
    "garantie locative": ["2018015087"],
    "bail à ferme": ["1969110450"],
    # Corporate
    "vennootschap": ["2019A40586"],
    "bestuurder": ["2019A40586"],
    "aandeelhouder": ["2019A40586"],
    "vzw": ["2019A40586"],
    "bv": ["2019A40586"],
    "nv": ["2019A40586"],
    "jaarrekening": ["2019A40586"],
    "algemene vergadering": ["2019A40586"],
    "faillissement": ["2019A40586", "2013A11134"],
    "insolventie": ["2019A40586", "2013A11134"],
    "gerechtelijke reorganisatie": ["2013A11134"],
    "société": ["2019A40586"],
    "administrateur": ["2019A40586"],
    "actionnaire": ["2019A40586"],
    "asbl": ["2019A40586"],
    "faillite": ["2013A11134"],
    # Consumer and economic law
    "garantie": ["2013A11134"],
    "herroepingsrecht": ["2013A11134"],
    "consument": ["2013A11134"],
    "factuur": ["2013A11134"],
    "solden": ["2013A11134"],
    "reclame": ["2013A11134"],
    "webshop": ["2013A11134"],
    "verkoop op afstand": ["2013A11134"],
    "verborgen gebrek": ["2013A11134"],
    "bedenktijd": ["2013A11134"],
    "consommateur": ["2013A11134"],
    "droit de rétractation": ["2013A11134"],
    "vente à distance": ["2013A11134"],
    # Drugs
    "drugs": ["1921022450"],
    "verdovende middelen": ["1921022450"],
    "cannabis": ["1921022450"],
    "stupéfiants": ["1921022450"],
    "drogue": ["1921022450"],
    # Tax
    "belasting": ["1993082751", "2013036154"],
    "erfbelasting": ["2013036154"],
    "schenkbelasting": ["2013036154"],
    "onroerende voorheffing": ["2013036154"],
    "registratierecht": ["2013036154"],
    "inkomstenbelasting": ["1993082751"],
    "personenbelasting": ["1993082751"],
    "belastingaangifte": ["1993082751"],
    "btw-aangifte": ["1969070305"],
    "btw-aftrek": ["1969070305"],
    "btw-vrijstelling": ["1969070305"],
    "medecontractant": ["1969070305"],
    "btw": ["1969070305"],
    "impôt": ["1993082751", "2013036154"],
    "droits de succession": ["2013036154"],
    "précompte immobilier": ["2013036154"],
    "tva": ["1969070305"],
    # Immigration
    "verblijf": ["1980121550"],
    "vreemdeling": ["1980121550"],
    "verblijfsvergunning": ["1980121550"],
    "asiel": ["1980121550"],
    "séjour": ["1980121550"],
    "étranger": ["1980121550"],
    "asile": ["1980121550"],
    # Camera surveillance
    "camera": ["2007000528"],
    "camerabewaking": ["2007000528"],
    "caméra": ["2007000528"],
    "vidéosurveillance": ["2007000528"],
    # Procedure
    "rechtszaak": ["1967101052"],
    "procedure": ["1967101052"],
    "dagvaarding": ["1967101052"],
    "beroep": ["1967101052"],
    "rechtbank": ["1967101052"],
    "procès": ["1967101052"],
    "tribunal": ["1967101052"],
    "assignation": ["1967101052"],
    # Social security
    "werkloosheid": ["1991013192"],
    "werkloosheidsuitkering": ["1991013192"],
    "werkloos": ["1991013192"],
    "rva": ["1991013192"],
    "chômage": ["1991013192"],
    "ziekteverzekering": ["1994071450"],
    "ziekenfonds": ["1994071450"],
    "arbeidsongeschiktheid": ["1994071450"],
    "invaliditeit": ["1994071450"],
    "mutuelle": ["1994071450"],
    "incapacité de travail": ["1994071450"],
    "leefloon": ["2002022559"],
    "ocmw": ["2002022559"],
    "cpas": ["2002022559"],
    "revenu d'intégration": ["2002022559"],
    "kinderbijslag": ["1967102704"],
    "groeipakket": ["1967102704"],
    "allocations familiales": ["1967102704"],
    "inkomensgarantie": ["2001022201"],
    "igo": ["2001022201"],
    "zelfstandige": ["1967072702"],
    "bijberoep": ["1967072702"],
    # Labour, other
    "loonbeslag": ["1965041207"],
    "loonbescherming": ["1965041207"],
    "saisie sur salaire": ["1965041207"],
    "feestdag": ["1974010407"],
    "feestdagen": ["1974010407"],
    "jour férié": ["1974010407"],
    "cao": ["1968120503"],
    "paritair comité": ["1968120503"],
    "cct": ["1968120503"],
    "commission paritaire": ["1968120503"],
    "uitzendarbeid": ["1987012597"],
    "uitzendkracht": ["1987012597"],
    "interim": ["1987012597"],
    "intérim": ["1987012597"],
    "discriminatie": ["2007002098", "2007002099"],
    "gelijke behandeling": ["2007002098", "2007002099"],
    "discrimination": ["2007002098", "2007002099"],
    "tijdskrediet": ["2001013224"],
    "loopbaanonderbreking": ["2001013224"],
    "crédit-temps": ["2001013224"],
    "sociale verkiezingen": ["1948092002"],
    "ondernemingsraad": ["1948092002"],
    "élections sociales": ["1948092002"],
    "brugpensioen": ["2010201753"],
    "swt": ["2010201753"],
    "beroepsziekte": ["1971041001"],
    "arbeidsongeval": ["1971041001", "1996012650"],
    "maladie professionnelle": ["1971041001"],
    "accident du travail": ["1971041001", "1996012650"],
})

# =============================================================================
# Keyword Expansion (question pattern -> lexical search phrases)
# =============================================================================

LEGAL_TERM_EXPANSIONS = (
    (re.compile(r"vakantiedagen|jaarlijks.*vakantie", re.IGNORECASE),
     ("vakantiedagen", "jaarlijkse vakantie", "wettelijke vakantie", "verlof")),
    (re.compile(r"ontslag", re.IGNORECASE),
     ("ontslag", "opzeg", "beëindiging", "ontslaan", "opzegtermijn", "opzegvergoeding")),
    (re.compile(r"zelfstandig", re.IGNORECASE),
     ("zelfstandig", "zelfstandige", "freelance", "schijnzelfstandigheid")),
    (re.compile(r"deeltijd|parttime", re.IGNORECASE),
     ("deeltijd", "deeltijds", "part-time", "halftijds")),
    (re.compile(r"proef", re.IGNORECASE),
     ("proef", "proeftijd", "proefperiode", "testperiode")),
    (re.compile(r"concurrentie", re.IGNORECASE),
     ("concurrentiebeding", "niet-concurrentiebeding", "concurrentieclausule")),
    (re.compile(r"arbeider", re.IGNORECASE),
     ("arbeider", "arbeiders", "handarbeider")),
    (re.compile(r"bediende", re.IGNORECASE),
     ("bediende", "bedienden", "kantoorwerk")),
    (re.compile(r"loon|salaris|bezoldiging", re.IGNORECASE),
     ("loon", "salaris", "verloning", "bezoldiging", "wedde")),
    (re.compile(r"overuren|over.*uren|meeruren", re.IGNORECASE),
     ("overuren", "meeruren", "aanvullende prestaties", "extra uren")),
    (re.compile(r"arbeidsovereenkomst|arbeidscontract|werkcontract", re.IGNORECASE),
     ("arbeidsovereenkomst", "arbeidscontract", "dienstverband", "tewerkstelling")),
    (re.compile(r"dringende.*reden|dringend.*ontslag", re.IGNORECASE),
     ("dringende reden", "dringend ontslag", "onmiddellijke beëindiging")),
    (re.compile(r"sociale.*bijdrage|rsz", re.IGNORECASE),
     ("sociale bijdragen", "rsz", "socialezekerheidsbijdrage")),
    (re.compile(r"werkloosheid", re.IGNORECASE),
     ("werkloosheid", "werkloosheidsuitkering", "werkloosheidsvergoeding")),
    (re.compile(r"minimumloon|minimum.*loon", re.IGNORECASE),
     ("minimumloon", "minimum loon", "gewaarborgd loon")),
    (re.compile(r"eindejaar.*premie|13.*maand", re.IGNORECASE),
     ("eindejaarspremie", "13de maand", "dertiende maand")),
    (re.compile(r"ziekteverlof|ziek", re.IGNORECASE),
     ("ziekteverlof", "ziekte", "arbeidsongeschiktheid")),
    (re.compile(r"zwangerschapsverlof|moederschaps", re.IGNORECASE),
     ("zwangerschapsverlof", "moederschapsverlof", "bevallingsrust")),
    (re.compile(r"discriminatie|ongelijke.*behandeling", re.IGNORECASE),
     ("discriminatie", "ongelijke behandeling", "gelijke behandeling")),
    (re.compile(r"pesten|pestgedrag|intimidatie", re.IGNORECASE),
     ("pestgedrag", "pesten", "intimidatie", "psychosociale risico")),
    (re.compile(r"thuiswerk|telewerk", re.IGNORECASE),
     ("thuiswerk", "telewerk", "thuiswerken", "afstandswerk")),
    (re.compile(r"arbeidsduur|werkuren|arbeidstijd", re.IGNORECASE),
     ("arbeidsduur", "arbeidstijd", "werkuren", "arbeidstijdvermindering")),
    (re.compile(r"burnout", re.IGNORECASE),
     ("burnout", "overspanning", "psychische belasting")),
)


def synonyms_for(term: str) -> tuple:
    """Cross-language equivalents of a normalized term (empty when unknown)."""
    return LEGAL_SYNONYMS.get(term, ())


def triggered_documents(question: str) -> dict[str, list[str]]:
    """
    Map each foundational document id triggered by the question to the
    keywords that triggered it.

    Keywords match at the start of a word, so "opzeg" also fires for
    "opzegtermijn" but "bv" does not fire inside "ebvb".
    """
    lowered = question.lower()
    hits: dict[str, list[str]] = {}
    for keyword, pattern, document_ids in _TRIGGER_PATTERNS:
        if not pattern.search(lowered):
            continue
        for document_id in document_ids:
            hits.setdefault(document_id, []).append(keyword)
    return hits


_TRIGGER_PATTERNS = tuple(
    (keyword, re.compile(r"(?<!\w)" + re.escape(keyword)), document_ids)
    for keyword, document_ids in TRIGGER_KEYWORDS.items()
)
