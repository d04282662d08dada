import asyncio
import json

import httpx
from conftest import ORIGIN, FakeSite, detail_page, legacy_code_page, legacy_program_page, page

from catalog_scraper.config import DelayConfig, SourceConfig
from catalog_scraper.models import MANDATORY, Course, ProgramRef, StudyProgram
from catalog_scraper.pipeline import COMBINED, run_scrape, run_source, scrape_source
from catalog_scraper.sources import CatalogSource

CS = f"{ORIGIN}/mk/program/kn-2018"
SE = f"{ORIGIN}/mk/program/si-2018"
IE = f"{ORIGIN}/mk/program/ie-2018"
INDEX_URL = f"{ORIGIN}/mk/dodiplomski-studii"


def _legacy_site(**overrides):
    pages = {
        CS: legacy_program_page([("Алгоритми", "/mk/subjects/a-kn"), ("Мрежи", "/mk/subjects/m")]),
        SE: legacy_program_page([("Алгоритми", "/mk/subjects/a-si")], caption="Изборни предмети"),
        IE: legacy_program_page([("Е-бизнис", "/mk/subjects/eb")]),
        f"{ORIGIN}/mk/subjects/a-kn": legacy_code_page("F18L1W002"),
        f"{ORIGIN}/mk/subjects/a-si": legacy_code_page("F18L1S002"),
        f"{ORIGIN}/mk/subjects/m": legacy_code_page("F18L2W015"),
        f"{ORIGIN}/mk/subjects/eb": legacy_code_page("F18L3S040"),
    }
    pages.update(overrides)
    return FakeSite(pages)


def _current_program_page(rows):
    body = "".join(
        f'<tr><td><span>{code}</span></td><td><a href="{href}">{name}</a></td><td>6</td></tr>'
        for code, name, href in rows
    )
    return page(
        '<div class="row"><div class="col-md-6"><h3>Прва година</h3>'
        f'<table class="table table-striped table-bordered">{body}</table>'
        "</div></div>"
    )


def _current_site():
    return {
        INDEX_URL: page(
            '<div id="block-views-akreditacija-2023-block-1"><div><div><div><div><div><ul>'
            '<li><div><a href="/mk/program/2023/kn">Компјутерски науки</a></div></li>'
            '<li><div><a href="/mk/program/2023/kn/en">Computer Science</a></div></li>'
            "</ul></div></div></div></div></div></div>"
        ),
        f"{ORIGIN}/mk/program/2023/kn": _current_program_page(
            [
                ("F23L1W004", "Алгоритми", "/mk/subject/F23L1W004"),
                ("F23L2S030", "Облак", "/mk/subject/F23L2S030"),
            ]
        ),
        f"{ORIGIN}/mk/subject/F23L1W004": detail_page(semester="Зимски 3"),
        f"{ORIGIN}/mk/subject/F23L2S030": detail_page(semester="Летен 4", description="кратко"),
    }


def _current_config(http_config):
    return SourceConfig(
        enabled=True,
        base_url=INDEX_URL,
        delays=DelayConfig(between_subjects=0.3, between_programs=1.0),
        http=http_config,
    )


def test_course_listed_by_two_programs_is_one_record(legacy_config, make_config, sleep_recorder):
    config = make_config(legacy=legacy_config([(CS, "Компјутерски науки"), (SE, "Софтверско инженерство")]))

    courses = asyncio.run(run_source("2018", config, sleep=sleep_recorder, transport=_legacy_site().transport()))

    assert [c.name for c in courses] == ["Алгоритми", "Мрежи"]
    algorithms = courses[0]
    assert algorithms.codes == ["F18L1W002", "F18L1S002"]
    assert [sp.to_dict() for sp in algorithms.study_programs] == [
        {"programName": "Компјутерски науки", "type": "Mandatory"},
        {"programName": "Софтверско инженерство", "type": "Elective"},
    ]
    # one delay between the two programs
    assert sleep_recorder.calls.count(1.0) == 1


def test_unreachable_program_does_not_affect_the_others(legacy_config, make_config, sleep_recorder):
    config = make_config(
        legacy=legacy_config([(CS, "КН"), (SE, "СИ"), (IE, "ИЕ")])
    )
    site = _legacy_site(**{SE: httpx.ConnectError})

    courses = asyncio.run(run_source("2018", config, sleep=sleep_recorder, transport=site.transport()))

    assert [(c.name, c.codes, c.program_names()) for c in courses] == [
        ("Алгоритми", ["F18L1W002"], ["КН"]),
        ("Мрежи", ["F18L2W015"], ["КН"]),
        ("Е-бизнис", ["F18L3S040"], ["ИЕ"]),
    ]
    assert sleep_recorder.calls.count(1.0) == 2


def test_disabled_source_fetches_nothing(make_config, sleep_recorder):
    disabled = SourceConfig(enabled=False, program_urls=(CS,), program_names=("КН",))
    site = _legacy_site()

    courses = asyncio.run(
        run_source("2018", make_config(legacy=disabled), sleep=sleep_recorder, transport=site.transport())
    )

    assert courses == []
    assert site.calls == []
    assert sleep_recorder.calls == []


class _ScriptedSource(CatalogSource):
    key = "test"

    def __init__(self, results):
        super().__init__(SourceConfig(delays=DelayConfig(between_programs=2.0)), fetcher=None, scheduler=None)
        self.results = results

    async def list_programs(self):
        return [ProgramRef(url=f"https://example.org/{name}", name=name) for name in self.results]

    async def scrape_program(self, program):
        result = self.results[program.name]
        if isinstance(result, Exception):
            raise result
        return result


def test_exception_in_one_program_is_contained(sleep_recorder):
    course = Course(name="Статистика", codes=["S1"], study_programs=[StudyProgram("B", MANDATORY)])
    source = _ScriptedSource({"A": ValueError("broken markup"), "B": [course], "C": []})

    courses = asyncio.run(scrape_source(source, sleep=sleep_recorder))

    assert [c.name for c in courses] == ["Статистика"]
    assert sleep_recorder.calls == [2.0, 2.0]


def test_current_source_lists_programs_and_enriches(http_config, make_config, sleep_recorder):
    site = FakeSite(_current_site())
    config = make_config(current=_current_config(http_config))

    courses = asyncio.run(run_source("2023", config, sleep=sleep_recorder, transport=site.transport()))

    assert [(c.name, c.codes, c.level, c.semester) for c in courses] == [
        ("Алгоритми", ["F23L1W004"], "L1", 3),
        ("Облак", ["F23L2S030"], "L2", 4),
    ]
    assert courses[0].description is not None
    assert courses[1].description is None
    assert courses[0].prerequisites == "Нема"
    assert f"{ORIGIN}/mk/program/2023/kn/en" not in site.calls


def test_run_scrape_both_writes_per_generation_and_combined_files(
    legacy_config, http_config, make_config, output_config, sleep_recorder
):
    pages = _current_site()
    pages.update(_legacy_site().pages)
    site = FakeSite(pages)
    config = make_config(legacy=legacy_config([(CS, "КН 2018")]), current=_current_config(http_config))

    summaries = asyncio.run(run_scrape(("2018", "2023"), config, sleep=sleep_recorder, transport=site.transport()))

    out = output_config.directory
    legacy = json.loads((out / "c18.json").read_text(encoding="utf-8"))
    current = json.loads((out / "c23.json").read_text(encoding="utf-8"))
    combined = json.loads((out / "all.json").read_text(encoding="utf-8"))
    assert [c["name"] for c in legacy] == ["Алгоритми", "Мрежи"]
    assert [c["name"] for c in current] == ["Алгоритми", "Облак"]
    assert [c["name"] for c in combined] == ["Алгоритми", "Мрежи", "Облак"]

    algorithms = combined[0]
    assert algorithms["codes"] == ["F18L1W002", "F23L1W004"]
    assert [sp["programName"] for sp in algorithms["studyPrograms"]] == ["КН 2018", "Компјутерски науки"]
    assert algorithms["link"] == f"{ORIGIN}/mk/subjects/a-kn"
    assert algorithms["semester"] == 3
    assert "semester" not in legacy[0]

    assert set(summaries) == {"2018", "2023", COMBINED}
    assert summaries[COMBINED]["totalSubjects"] == 3
    assert summaries[COMBINED]["multiProgramSubjects"] == 1
    saved = json.loads((out / "all-summary.json").read_text(encoding="utf-8"))
    assert saved["totalStudyPrograms"] == 2
    assert saved["subjects"] == combined
    assert (out / "c18-summary.json").exists()
    assert (out / "c23-summary.json").exists()


def test_single_generation_writes_no_combined_file(legacy_config, make_config, output_config, sleep_recorder):
    config = make_config(legacy=legacy_config([(CS, "КН")]))

    summaries = asyncio.run(
        run_scrape(("2018",), config, sleep=sleep_recorder, transport=_legacy_site().transport())
    )

    assert set(summaries) == {"2018"}
    assert (output_config.directory / "c18.json").exists()
    assert not (output_config.directory / "all.json").exists()


def test_partial_failure_still_reports_success(legacy_config, make_config, sleep_recorder):
    config = make_config(legacy=legacy_config([(CS, "КН"), (SE, "СИ")]))
    site = _legacy_site(**{CS: (503, "maintenance")})

    summaries = asyncio.run(run_scrape(("2018",), config, sleep=sleep_recorder, transport=site.transport()))

    # only the counts reveal that a program is missing
    summary = summaries["2018"]
    assert summary["success"] is True
    assert "error" not in summary
    assert summary["totalSubjects"] == 1
    assert summary["totalStudyPrograms"] == 1
