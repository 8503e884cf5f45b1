"""
Card label translations.

Russian is the source language: every label is looked up by its Russian
template and falls back to it. Templates use ``str.format`` named fields,
so the translated template is formatted by the caller.

Tables exist for ``kk`` and the bilingual ``kk/ru`` where Kazakh comes
first; any other language code, ``""`` included, renders Russian.
"""

from typing import Dict


# -------------------------------------------------------------------------
# Russian source templates
# -------------------------------------------------------------------------

PAGE_OF = "стр. {page} из {total}"
DOCUMENT_ORIGINAL = "Подлинник электронного документа"
SIGNATURE_OF = "ЭЦП, {signer}"
IIN = "ИИН {iin}"
CARD_TITLE = "КАРТОЧКА ЭЛЕКТРОННОГО ДОКУМЕНТА"
CREATION_DATE = "Дата и время формирования"
BUILDER_NAME = "Информационная система или сервис"
CONTENTS = "Содержание:"
INFO_BLOCK = "Информационный блок"
DOCUMENT_VISUALIZATION = "Визуализация электронного документа"
SIGNATURES_VISUALIZATION = "Визуализация подписей под электронным документом"
ATTACHMENTS_LIST = "Перечень вложенных файлов:"
CARD_FOOTER = "Карточка электронного документа"
DOCUMENT_COPY_WATERMARK = "ВИЗУАЛИЗАЦИЯ ЭЛЕКТРОННОГО ДОКУМЕНТА"
SIGNATURE_VISUALIZATION = "Визуализация электронной цифровой подписи"
SIGNATURE_NUMBER = "Подпись №{number}"
SIGNATURE_DATE = "Дата формирования подписи:"
SIGNED_BY = "Подписал(а):"
SUBJECT_WITH_IIN = "{name}, ИИН {iin}"
ORGANIZATION_WITH_BIN = "{name}, БИН {bin}"
TEMPLATE = "Шаблон:"
KEY_USAGE = "Допустимое использование:"

CERTIFICATE_DETAILS = (
    "Субъект: {subject}\n"
    "Альтернативные имена: {alt_name}\n"
    "Серийный номер: {serial}\n"
    "С: {valid_from}\n"
    "По: {valid_until}\n"
    "Издатель: {issuer}"
)

TSP_DETAILS = (
    "Метка времени: {generated_at}\n"
    "Субъект: {subject}\n"
    "Серийный номер: {serial}\n"
    "Издатель: {issuer}"
)

OCSP_DETAILS = (
    "OCSP: {status}\n"
    "Сформирован: {generated_at}\n"
    "Субъект: {subject}\n"
    "Серийный номер: {serial}\n"
    "Издатель: {issuer}"
)

INFO_TEXT = """
При формировании карточки электронного документа была автоматически выполнена процедура проверки ЭЦП в соответствии с положениями Приказа Министра по инвестициям и развитию Республики Казахстан «Об утверждении Правил проверки подлинности электронной цифровой подписи».

Карточка электронного документа — это файл в формате PDF, состоящий из визуально отображаемой части и вложенных файлов.

Визуально отображаемая часть карточки электронного документа носит исключительно информативный характер и не обладает юридической значимостью.

Многие программы для просмотра PDF поддерживают вложенные файлы, позволяют просматривать их и сохранять как обычные файлы. Среди них Adobe Acrobat Reader и браузер Firefox.

В соответствии с Законом Республики Казахстан «Об электронном документе и электронной цифровой подписи», подлинник электронного документа обладает юридической значимостью в том случае, если он подписан ЭЦП и были выполнены проверки подписи в соответствии с утвержденными правилами.

{how_to_verify}

ВНИМАНИЕ! Остерегайтесь мошенников! При получении электронных документов, обязательно выполняйте проверку подписей! Злоумышленники могут пробовать подделывать или менять визуально отображаемую часть карточки,  так как она не защищена от изменения цифровой подписью."""


# -------------------------------------------------------------------------
# Kazakh
# -------------------------------------------------------------------------

KK: Dict[str, str] = {
    PAGE_OF: "{total} беттің {page} беті",
    DOCUMENT_ORIGINAL: "Электрондық құжаттың түпнұсқасы",
    SIGNATURE_OF: "ЭСҚ, {signer}",
    IIN: "ЖСН {iin}",
    CARD_TITLE: "ЭЛЕКТРОНДЫҚ ҚҰЖАТТЫҢ КАРТОЧКАСЫ",
    CREATION_DATE: "Жасалу күні мен уақыты",
    BUILDER_NAME: "Ақпараттық жүйе немесе сервис",
    CONTENTS: "Мазмұны:",
    INFO_BLOCK: "Ақпараттық блок",
    DOCUMENT_VISUALIZATION: "Электрондық құжатты визуалдау",
    SIGNATURES_VISUALIZATION: "Электрондық құжатта қол қоюды визуалдау",
    ATTACHMENTS_LIST: "Тіркемеленген файлдар тізімі:",
    CARD_FOOTER: "Электрондық құжат карточкасы",
    DOCUMENT_COPY_WATERMARK: "ЭЛЕКТРОНДЫҚ ҚҰЖАТТЫ ВИЗУАЛДАУ",
    SIGNATURE_VISUALIZATION: "Электрондық сандық қолтаңбаның визуалдауы",
    SIGNATURE_NUMBER: "Қолтаңба №{number}",
    SIGNATURE_DATE: "Қолтаңба жасалған күн:",
    SIGNED_BY: "Қол қойды:",
    SUBJECT_WITH_IIN: "{name}, ЖСН {iin}",
    ORGANIZATION_WITH_BIN: "{name}, БСН {bin}",
    TEMPLATE: "Үлгі:",
    KEY_USAGE: "Рұқсат етілген пайдалану:",
    CERTIFICATE_DETAILS: (
        "Субъект: {subject}\n"
        "Баламалы есімдер: {alt_name}\n"
        "Сериялық нөмір {serial}\n"
        "Бастап: {valid_from}\n"
        "Дейін: {valid_until}\n"
        "Басып шығарушы: {issuer}"
    ),
    TSP_DETAILS: (
        "Уақыт белгісі: {generated_at}\n"
        "Субъект: {subject}\n"
        "Сериялық нөмір {serial}\n"
        "Басып шығарушы: {issuer}"
    ),
    OCSP_DETAILS: (
        "OCSP: {status}\n"
        "Қалыптасты: {generated_at}\n"
        "Субъект: {subject}\n"
        "Сериялық нөмір {serial}\n"
        "Басып шығарушы: {issuer}"
    ),
    INFO_TEXT: """
Электрондық құжат карточкасын қалыптастыру кезінде ЭСҚ тексеру рәсімі «Электрондық сандық қолтаңбаның төлнұсқалығын тексеру қағидаларын бекіту туралы» Қазақстан Республикасы Инвестициялар және даму министрінің бұйрығының ережелеріне сәйкес автоматты түрде жүзеге асырылды.

Электрондық құжат карточкасы – бұл визуалды түрде көрсетілетін бөліктен және оған қоса берілген файлдардан тұратын PDF файлы.

Электрондық құжат карточкасының визуалды көрсетілетін бөлігі тек ақпараттық мақсатта және оның заңдық мәні жоқ.

Көптеген PDF-ті қарауға арналған бағдарламалары тіркемеленген файлдарды қолдайды және оларды кәдімгі файлдар ретінде көруге және сақтауға мүмкіндік береді. Олардың ішінде Adobe Acrobat Reader және Firefox веб шолғышы бар.

Қазақстан Республикасының «Электрондық құжат және электрондық сандық қолтаңба туралы» Заңына сәйкес электрондық құжаттың түпнұсқасы ЭСҚ-мен қол қойылған және қолтаңбаны тексеру бекітілген ережелерге сәйкес жүргізілген болса, оның заңдық мәні болады.

{how_to_verify}

НАЗАР АУДАРЫҢЫЗ! Алаяқтардан сақ болыңыз! Электрондық құжаттарды алу кезінде міндетті түрде қолтаңбаларды тексеріңіз! Алаяқтар картаның визуалды түрде көрсетілген бөлігін қолдан жасауға немесе өзгертуге әрекеттенуі мүмкін, себебі ол сандық қолтаңба өзгертуінен қорғалмаған.""",
}


# -------------------------------------------------------------------------
# Bilingual Kazakh/Russian
# -------------------------------------------------------------------------

# Fragments substituted into other labels stay Kazakh only.
_KK_ONLY = frozenset({IIN, SUBJECT_WITH_IIN, ORGANIZATION_WITH_BIN})

# Page bodies with several lines of their own are stacked, not joined.
_STACKED = frozenset(
    {CERTIFICATE_DETAILS, TSP_DETAILS, OCSP_DETAILS, INFO_TEXT}
)


def _bilingual(ru: str, kk: str) -> str:
    if ru in _KK_ONLY:
        return kk
    if ru == INFO_TEXT:
        # Both halves carry the verification hint
        return kk + "\n" + ru
    if ru in _STACKED:
        return kk + "\n\n" + ru
    return f"{kk} / {ru}"


KK_RU: Dict[str, str] = {ru: _bilingual(ru, kk) for ru, kk in KK.items()}


_TABLES: Dict[str, Dict[str, str]] = {
    "kk": KK,
    "kk/ru": KK_RU,
}


def translate(language: str, text: str) -> str:
    """Return the template for ``text`` in ``language``, Russian otherwise."""
    table = _TABLES.get(language)
    if table is None:
        return text
    return table.get(text, text)
