"""Card catalog: the deck of cards for the enabled verbs and active pronouns."""
from typing import Iterable, List

from conjbot.models.training_models import Candidate, Card, ProgressStore, Pronoun, make_card_id
from conjbot.services.conjugation import full_answer


def build_deck(verbs: Iterable[str], pronouns: Iterable[Pronoun]) -> List[Card]:
    """Cross product of verbs and pronouns, verb-major, in input order."""
    pronouns = list(pronouns)
    return [
        Card(id=make_card_id(verb, pronoun), verb=verb, pronoun=pronoun, answer=full_answer(verb, pronoun))
        for verb in verbs
        for pronoun in pronouns
    ]


def merge_candidates(deck: Iterable[Card], store: ProgressStore) -> List[Candidate]:
    """Attach the stored statistics to every card of the deck."""
    return [Candidate(card=card, stats=store.get(card.id)) for card in deck]
