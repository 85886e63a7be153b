"""
Principle Seed Data
===================

The ten principles, upserted by number on startup.
"""

import logging

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from karma_diary.models.principle import Principle

logger = logging.getLogger(__name__)

PRINCIPLES = [
    {
        "number": 1,
        "title": "Не шкодь іншим",
        "description": "Захист життя / Незбереження життя",
        "reflections": [
            "Як я можу сьогодні проявити турботу про живі істоти?",
            "Які мої дії впливають на оточуючий світ?",
            "Чи можу я замінити шкідливі звички на корисні?",
        ],
        "practical_steps": [
            "Обирайте екологічні продукти",
            "Проявляйте доброту до тварин",
            "Підтримуйте чистоту довкілля",
        ],
    },
    {
        "number": 2,
        "title": "Будь щедрим",
        "description": "Щедрість / Крадіжки. Збереження чужого майна / Пошкодження чужого майна",
        "reflections": [
            "Чим я можу сьогодні поділитися з іншими?",
            "Чи бережу я те, що мені не належить?",
            "Що заважає мені віддавати легко?",
        ],
        "practical_steps": [
            "Поділіться часом або увагою з кимось",
            "Поверніть позичене вчасно",
            "Подбайте про спільні речі",
        ],
    },
    {
        "number": 3,
        "title": "Поважай стосунки",
        "description": "Повага / Неповага відносин",
        "reflections": [
            "Як я ставлюся до близьких сьогодні?",
            "Чи поважаю я чужі межі?",
            "Що означає вірність для мене?",
        ],
        "practical_steps": [
            "Скажіть партнеру або другу щось тепле",
            "Дотримуйтеся даних обіцянок",
            "Не втручайтеся в чужі стосунки",
        ],
    },
    {
        "number": 4,
        "title": "Говори правду",
        "description": "Правдива мова / Брехня",
        "reflections": [
            "Чи говорю я правду в усіх ситуаціях?",
            "Як моя чесність впливає на відносини?",
            "Що заважає мені бути відвертим?",
        ],
        "practical_steps": [
            "Будьте чесними у спілкуванні",
            "Тримайте обіцянки",
            "Визнавайте свої помилки",
        ],
    },
    {
        "number": 5,
        "title": "Об'єднуй словами",
        "description": "З'єднувальна / Роз'єднувальна мова",
        "reflections": [
            "Чи зближують мої слова людей?",
            "Коли я передаю плітки?",
            "Як я можу примирити когось сьогодні?",
        ],
        "practical_steps": [
            "Утримайтеся від пліток",
            "Говоріть про людей так, ніби вони поруч",
            "Підтримайте примирення",
        ],
    },
    {
        "number": 6,
        "title": "Контролюй слова",
        "description": "М'яка мова / Груба мова",
        "reflections": [
            "Чи приносять мої слова користь іншим?",
            "Як я можу говорити більш обдумано?",
            "Що відчувають люди після розмови зі мною?",
        ],
        "practical_steps": [
            "Говоріть добрі слова підтримки",
            "Уникайте грубощів та образ",
            "Практикуйте активне слухання",
        ],
    },
    {
        "number": 7,
        "title": "Говори по суті",
        "description": "Значима мова / Пусті розмови",
        "reflections": [
            "Скільки часу я витрачаю на пусті розмови?",
            "Що я хочу сказати насправді?",
            "Як мої слова можуть бути кориснішими?",
        ],
        "practical_steps": [
            "Зупиняйтеся перед тим, як заговорити",
            "Замініть пусту розмову на корисну",
            "Слухайте більше, ніж говорите",
        ],
    },
    {
        "number": 8,
        "title": "Радій успіхам інших",
        "description": "Радість успіхам інших / Заздрість",
        "reflections": [
            "Чи відчуваю я заздрість до інших?",
            "Як перетворити заздрість на натхнення?",
            "Що приносить мені справжню радість?",
        ],
        "practical_steps": [
            "Радійте успіхам інших",
            "Фокусуйтеся на власних досягненнях",
            "Привітайте когось із його перемогою",
        ],
    },
    {
        "number": 9,
        "title": "Співчувай",
        "description": "Співчуття / Недоброзичливість",
        "reflections": [
            "Кому я можу допомогти сьогодні?",
            "Як я реагую на чужий біль?",
            "Чи бажаю я добра тим, хто мене скривдив?",
        ],
        "practical_steps": [
            "Пропонуйте допомогу без прохання",
            "Побажайте добра людині, яка вас дратує",
            "Підтримуйте тих, хто у скруті",
        ],
    },
    {
        "number": 10,
        "title": "Живи з правильним світоглядом",
        "description": "Правильний / Неправильний світогляд",
        "reflections": [
            "Чи бачу я зв'язок між своїми діями та їх наслідками?",
            "Що я сьогодні посіяв?",
            "Як мій світогляд впливає на вибір?",
        ],
        "practical_steps": [
            "Помічайте наслідки власних вчинків",
            "Записуйте, що ви посіяли сьогодні",
            "Проявляйте доброту до себе",
        ],
    },
]

PRINCIPLE_URL = "https://vitalinapetrova.com.ua/karma-chelendzh/{number}"


async def seed_principles(db: AsyncSession) -> int:
    """Insert or refresh the ten principles. Returns the number of rows written."""
    rows = [
        {**data, "url": PRINCIPLE_URL.format(number=data["number"])}
        for data in PRINCIPLES
    ]
    stmt = pg_insert(Principle).values(rows)
    stmt = stmt.on_conflict_do_update(
        index_elements=[Principle.number],
        set_={
            "title": stmt.excluded.title,
            "description": stmt.excluded.description,
            "url": stmt.excluded.url,
            "reflections": stmt.excluded.reflections,
            "practical_steps": stmt.excluded.practical_steps,
        },
    )
    await db.execute(stmt)
    logger.info("Seeded %d principles", len(rows))
    return len(rows)
