"""Static tables: verbs to practise and difficulty stages."""
from dataclasses import dataclass
from typing import List, Tuple

from conjbot.models.training_models import ALL_PRONOUNS, Pronoun, Stage


@dataclass(frozen=True)
class VerbEntry:
    """A verb of the bank with its gloss."""
    key: str
    label: str


# Regular -er verbs only: no stem-changing verbs such as préférer, acheter or
# appeler. The -ger (nous mangeons) and -cer (nous commençons) spelling rules
# are handled by the conjugation rules.
VERB_BANK: List[VerbEntry] = [
    VerbEntry("parler", "parler (to speak)"),
    VerbEntry("aimer", "aimer (to like, to love)"),
    VerbEntry("regarder", "regarder (to watch)"),
    VerbEntry("travailler", "travailler (to work)"),
    VerbEntry("écouter", "écouter (to listen)"),
    VerbEntry("habiter", "habiter (to live)"),
    VerbEntry("jouer", "jouer (to play)"),
    VerbEntry("marcher", "marcher (to walk)"),
    VerbEntry("chercher", "chercher (to look for)"),
    VerbEntry("arriver", "arriver (to arrive)"),
    VerbEntry("chanter", "chanter (to sing)"),
    VerbEntry("étudier", "étudier (to study)"),
    VerbEntry("penser", "penser (to think)"),
    VerbEntry("porter", "porter (to carry, to wear)"),
    VerbEntry("visiter", "visiter (to visit)"),
    VerbEntry("danser", "danser (to dance)"),
    VerbEntry("manger", "manger (to eat)"),
    VerbEntry("commencer", "commencer (to begin)"),
]

VERB_KEYS: Tuple[str, ...] = tuple(entry.key for entry in VERB_BANK)

STAGES: List[Stage] = [
    Stage((Pronoun.JE, Pronoun.TU), hints=True, ignore_accents=True, label="Easy start"),
    Stage((Pronoun.JE, Pronoun.TU, Pronoun.IL_ELLE), hints=True, ignore_accents=True, label="+ il/elle"),
    Stage(
        (Pronoun.JE, Pronoun.TU, Pronoun.IL_ELLE, Pronoun.NOUS, Pronoun.VOUS),
        hints=True,
        ignore_accents=True,
        label="+ nous, vous",
    ),
    Stage(ALL_PRONOUNS, hints=True, ignore_accents=True, label="All pronouns"),
    Stage(ALL_PRONOUNS, hints=False, ignore_accents=False, label="Pro: accents, no hints"),
]


def default_verbs(count: int) -> List[str]:
    """The first `count` verbs of the bank."""
    return list(VERB_KEYS[:count])
