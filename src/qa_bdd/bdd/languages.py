from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .models import StepKeywordType

DEFAULT_LANGUAGE = "en"


@dataclass(frozen=True)
class Dialect:
    """Keyword tokens for one spoken language"""
    feature: List[str]
    rule: List[str]
    scenario: List[str]
    scenario_outline: List[str]
    background: List[str]
    examples: List[str]
    given: List[str]
    when: List[str]
    then: List[str]
    and_: List[str] = field(default_factory=list)
    but: List[str] = field(default_factory=list)

    @property
    def structural_keywords(self) -> List[str]:
        return (self.feature + self.rule + self.scenario + self.scenario_outline
                + self.background + self.examples)

    def step_keywords(self) -> Dict[str, StepKeywordType]:
        """
        Step keyword token -> keyword type.

        Longer tokens come first so that a keyword which is a prefix of another
        ("E" / "Então") never shadows it.
        """
        mapping: Dict[str, StepKeywordType] = {}
        groups = [
            (self.given, StepKeywordType.CONTEXT),
            (self.when, StepKeywordType.ACTION),
            (self.then, StepKeywordType.OUTCOME),
            (self.and_, StepKeywordType.CONJUNCTION),
            (self.but, StepKeywordType.CONJUNCTION),
        ]
        for tokens, keyword_type in groups:
            for token in tokens:
                mapping.setdefault(token, keyword_type)
        return dict(sorted(mapping.items(), key=lambda item: -len(item[0])))


ENGLISH = Dialect(
    feature=["Feature"],
    rule=["Rule"],
    scenario=["Scenario", "Example"],
    scenario_outline=["Scenario Outline", "Scenario Template"],
    background=["Background"],
    examples=["Examples", "Scenarios"],
    given=["Given"],
    when=["When"],
    then=["Then"],
    and_=["And"],
    but=["But"],
)

_LANGUAGES: Dict[str, Dialect] = {
    "en": ENGLISH,
    "fr": Dialect(
        feature=["Fonctionnalité"],
        rule=["Règle"],
        scenario=["Scénario", "Exemple"],
        scenario_outline=["Plan du Scénario", "Plan du scénario"],
        background=["Contexte"],
        examples=["Exemples"],
        given=["Soit", "Etant donné", "Étant donné", "Etant donnée", "Étant donnée"],
        when=["Quand", "Lorsque", "Lorsqu'"],
        then=["Alors"],
        and_=["Et"],
        but=["Mais"],
    ),
    "de": Dialect(
        feature=["Funktionalität", "Funktion"],
        rule=["Regel"],
        scenario=["Szenario", "Beispiel"],
        scenario_outline=["Szenariovorlage", "Szenarien"],
        background=["Grundlage", "Hintergrund"],
        examples=["Beispiele"],
        given=["Angenommen", "Gegeben sei", "Gegeben seien"],
        when=["Wenn"],
        then=["Dann"],
        and_=["Und"],
        but=["Aber"],
    ),
    "es": Dialect(
        feature=["Característica"],
        rule=["Regla"],
        scenario=["Escenario", "Ejemplo"],
        scenario_outline=["Esquema del escenario"],
        background=["Antecedentes"],
        examples=["Ejemplos"],
        given=["Dado", "Dada", "Dados", "Dadas"],
        when=["Cuando"],
        then=["Entonces"],
        and_=["Y"],
        but=["Pero"],
    ),
    "pt": Dialect(
        feature=["Funcionalidade", "Característica"],
        rule=["Regra"],
        scenario=["Cenário", "Cenario", "Exemplo"],
        scenario_outline=["Esquema do Cenário", "Esquema do Cenario"],
        background=["Contexto", "Cenário de Fundo", "Cenario de Fundo"],
        examples=["Exemplos"],
        given=["Dado", "Dada", "Dados", "Dadas"],
        when=["Quando"],
        then=["Então", "Entao"],
        and_=["E"],
        but=["Mas"],
    ),
    "it": Dialect(
        feature=["Funzionalità"],
        rule=["Regola"],
        scenario=["Scenario", "Esempio"],
        scenario_outline=["Schema dello scenario"],
        background=["Contesto"],
        examples=["Esempi"],
        given=["Dato", "Data", "Dati", "Date"],
        when=["Quando"],
        then=["Allora"],
        and_=["E"],
        but=["Ma"],
    ),
    "nl": Dialect(
        feature=["Functionaliteit"],
        rule=["Regel"],
        scenario=["Scenario", "Voorbeeld"],
        scenario_outline=["Abstract Scenario"],
        background=["Achtergrond"],
        examples=["Voorbeelden"],
        given=["Gegeven", "Stel"],
        when=["Als", "Wanneer"],
        then=["Dan"],
        and_=["En"],
        but=["Maar"],
    ),
    "ru": Dialect(
        feature=["Функция", "Функциональность", "Функционал", "Свойство"],
        rule=["Правило"],
        scenario=["Сценарий", "Пример"],
        scenario_outline=["Структура сценария"],
        background=["Предыстория", "Контекст"],
        examples=["Примеры"],
        given=["Допустим", "Пусть"],
        when=["Когда", "Если"],
        then=["Тогда", "То"],
        and_=["И", "К тому же"],
        but=["Но", "А"],
    ),
    "ja": Dialect(
        feature=["フィーチャ", "機能"],
        rule=["ルール"],
        scenario=["シナリオ"],
        scenario_outline=["シナリオアウトライン", "シナリオテンプレ", "シナリオテンプレート"],
        background=["背景"],
        examples=["例", "サンプル"],
        given=["前提"],
        when=["もし"],
        then=["ならば"],
        and_=["かつ"],
        but=["しかし", "ただし"],
    ),
    "zh": Dialect(
        feature=["功能"],
        rule=["规则"],
        scenario=["场景", "剧本"],
        scenario_outline=["场景大纲", "剧本大纲"],
        background=["背景"],
        examples=["例子"],
        given=["假如", "假设", "假定"],
        when=["当"],
        then=["那么"],
        and_=["而且", "并且", "同时"],
        but=["但是"],
    ),
    "ko": Dialect(
        feature=["기능"],
        rule=["규칙"],
        scenario=["시나리오"],
        scenario_outline=["시나리오 개요"],
        background=["배경"],
        examples=["예"],
        given=["조건", "먼저"],
        when=["만일", "만약"],
        then=["그러면"],
        and_=["그리고"],
        but=["하지만", "단"],
    ),
    "hi": Dialect(
        feature=["रूप लेख"],
        rule=["नियम"],
        scenario=["परिदृश्य"],
        scenario_outline=["परिदृश्य रूपरेखा"],
        background=["पृष्ठभूमि"],
        examples=["उदाहरण"],
        given=["अगर", "यदि", "चूंकि"],
        when=["जब"],
        then=["तब", "तो"],
        and_=["और", "तथा"],
        but=["पर", "परन्तु", "किन्तु"],
    ),
    "ar": Dialect(
        feature=["خاصية"],
        rule=["قاعدة"],
        scenario=["سيناريو"],
        scenario_outline=["مخطط السيناريو"],
        background=["الخلفية"],
        examples=["أمثلة"],
        given=["بفرض"],
        when=["متى", "عندما"],
        then=["اذاً", "ثم"],
        and_=["و"],
        but=["لكن"],
    ),
}


def register_language(code: str, dialect: Dialect) -> None:
    """Add or replace the keyword dictionary for a language code"""
    _LANGUAGES[code] = dialect


def get_dialect(code: str) -> Optional[Dialect]:
    return _LANGUAGES.get(code)


def supported_languages() -> List[str]:
    return list(_LANGUAGES)
