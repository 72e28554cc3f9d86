"""Present tense of regular -er verbs."""
import re
import unicodedata

from conjbot.models.training_models import Pronoun

ER_ENDINGS = {
    Pronoun.JE: "e",
    Pronoun.TU: "es",
    Pronoun.IL_ELLE: "e",
    Pronoun.NOUS: "ons",
    Pronoun.VOUS: "ez",
    Pronoun.ILS_ELLES: "ent",
}

_VOWEL_OR_H = re.compile(r"^[aeiouhâêîôûéèëïüœæàù]", re.IGNORECASE)
_COMBINING_MARKS = re.compile("[\u0300-\u036f]")


def strip_diacritics(text: str) -> str:
    """Drop accents, straighten curly apostrophes and trim."""
    decomposed = unicodedata.normalize("NFD", text)
    return _COMBINING_MARKS.sub("", decomposed).replace("’", "'").strip()


def starts_with_vowel_or_h(text: str) -> bool:
    return bool(_VOWEL_OR_H.match(text))


def conjugate_er(verb: str, pronoun: Pronoun) -> str:
    """Conjugated verb form without the subject, e.g. ("manger", NOUS) -> "mangeons"."""
    stem = verb[:-2]
    if pronoun is Pronoun.NOUS:
        if verb.endswith("ger"):
            return stem + "eons"
        if verb.endswith("cer"):
            return stem[:-1] + "çons"
    return stem + ER_ENDINGS[pronoun]


def display_pronoun_for_answer(pronoun: Pronoun) -> str:
    """Subject written in answers; the masculine form stands for il/elle and ils/elles."""
    if pronoun is Pronoun.IL_ELLE:
        return "il"
    if pronoun is Pronoun.ILS_ELLES:
        return "ils"
    return pronoun.value


def full_answer(verb: str, pronoun: Pronoun) -> str:
    """Subject plus verb form, with elision of je before a vowel or h."""
    form = conjugate_er(verb, pronoun)
    subject = display_pronoun_for_answer(pronoun)
    if subject == "je" and starts_with_vowel_or_h(form):
        return "j'" + form
    return f"{subject} {form}"
