"""Exit reason ("motif") codes and their French labels."""

from typing import Dict, Optional

UNSPECIFIED_LABEL = "Non spécifié"

MOTIF_LABELS: Dict[str, str] = {
    "fin_contrat": "Fin de contrat",
    "demission": "Démission",
    "licenciement": "Licenciement",
    "mutation": "Mutation",
    "retraite": "Retraite",
    "opportunite_salariale": "Opportunité salariale",
    "absences_frequentes": "Absences fréquentes",
    "comportement": "Comportement",
    "salaire": "Raisons salariales",
    "depart_volontaire": "Départ volontaire",
    "horaires_nocturnes": "Horaires nocturnes",
    "adaptation_difficile": "Adaptation difficile",
    "etudes": "Étudiant",
    "heures_insuffisantes": "Heures insuffisantes",
    "distance": "Distance",
    "indiscipline": "Indiscipline",
    "balance": "Difficulté avec la balance",
    "maladie": "Maladie",
    "respect_voisins": "Respect des voisins",
    "nature_travail": "Nature du travail",
    "sante": "Santé",
    "securite": "Sécurité",
    "rendement": "Rendement",
    "problemes_personnels": "Problèmes personnels",
    "caporal": "Raison de caporal",
    "refus_poste": "Refus de poste",
    "rejet_selection": "Rejet lors de la sélection",
    "repos_temporaire": "Repos temporaire",
    "secteur_insatisfaisant": "Secteur insatisfaisant",
    "pas_reponse": "Pas de réponse",
    "conditions_secteur": "Conditions du secteur",
    "raisons_personnelles": "Raisons personnelles",
    "autre": "Autre",
    "none": UNSPECIFIED_LABEL,
}

# Reasons written by the system itself
MOTIF_TRANSFER = "transfert"
MOTIF_MUTATION = "mutation"
MOTIF_NONE = "none"


def get_motif_label(motif: Optional[str]) -> str:
    """French label of a motif code; unknown codes are returned unchanged."""
    if not motif:
        return UNSPECIFIED_LABEL
    return MOTIF_LABELS.get(motif, motif)
