"""
Scoring criteria for the three score sheet parts.

Part A (written report): 15 criteria, 30 marks.
Part B (oral presentation): 10 criteria, 15 marks.
Part C (scientific merit): 15 criteria, 35 marks.

Section A judges fill Part A; Section BC judges fill Parts B and C.
"""
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


DEFAULT_STEP = 0.5


class Criterion(BaseModel):
    """Definition of a single scoring criterion."""
    id: str = Field(..., description="Criterion identifier")
    text: str = Field(..., description="Criterion label shown on the score sheet")
    description: Optional[str] = None
    max_score: float = Field(..., gt=0)
    step: float = Field(DEFAULT_STEP, gt=0, description="Score granularity")

    class Config:
        frozen = True

    def is_on_step(self, score: float) -> bool:
        """True when score is a whole multiple of the step (exact decimal check)."""
        remainder = Decimal(str(score)) % Decimal(str(self.step))
        return remainder == 0
PART_A_CRITERIA: List[Criterion] = [
    Criterion(id="a1", text="Write up neatly and logically organized", description="Write with clearly labeled sections eg. Abstract, and plagiarism pledge etc", max_score=2, step=0.5),
    Criterion(id="a2", text="Evidence of background research in write up (max 1mk)", description="Background information and knowledge, summarized in write up with articles in appendix", max_score=2, step=0.5),
    Criterion(id="a3", text="Introduction in write up (max 1mk)", description="Including focus question / problem statement and supporting evidence", max_score=2, step=0.5),
    Criterion(id="a4", text="Written language in write up and on poster", description="Legible, correct fonts, scientific, suitable headings, no spelling mistakes", max_score=2, step=0.5),
    Criterion(id="a5", text="Aim / hypothesis/ objectives of project reflected in write up and on poster", max_score=2, step=0.5),
    Criterion(id="a6", text="Methods (and materials) used or technologies used in write up and on poster", description="Presented in logical order, correct expression, more extensive in report than on poster", max_score=2, step=0.5),
    Criterion(id="a7", text="Variables identified in write up and on poster", description="Dependent and independent variable", max_score=2, step=0.5),
    Criterion(id="a8", text="Results in write up and on posters", description="Full observations, presented in a tabular form and in graphs in write up. Summary in graph or diagram form on poster. The results should be scientifically and mathematically suitable and correct.", max_score=2, step=0.5),
    Criterion(id="a9", text="Analysis of results in write up and on poster", description="Report/findings/graphs explained in words, more extensive in write up than on poster", max_score=2, step=0.5),
    Criterion(id="a10", text="Discussion of results in write up and on poster", description="Pattern and trends are noted and explained, anomalies/unusual results are discussed, limitations noted and clarified", max_score=2, step=0.5),
    Criterion(id="a11", text="Future possibilities of research in write up / recommendations", description="Future extensions and possibilities are identified", max_score=2, step=0.5),
    Criterion(id="a12", text="Conclusions are reflected in write up and on posters", description="They are valid, based on findings and linked to objectives.", max_score=2, step=0.5),
    Criterion(id="a13", text="Reference in write up", description="Reference of books, magazines and internet addresses given in the correct format", max_score=2, step=0.5),
    Criterion(id="a14", text="Acknowledgements in write up and on poster", description="It is important to find out depth of audit assistance received and how this assistance has been used", max_score=2, step=0.5),
    Criterion(id="a15", text="Display board – summaries project and is neatly organized", description="This must include correct size of the board and logical flow of presentation", max_score=2, step=0.5),
]

PART_B_CRITERIA: List[Criterion] = [
    Criterion(id="b1", text="Capture of interest", description="The learners presentation is exciting and stimulating", max_score=1, step=0.5),
    Criterion(id="b2", text="Enthusiasm / effort", description="A worthwhile effort was made to explain, lots of enthusiasm", max_score=1, step=0.5),
    Criterion(id="b3", text="Voice / tone", description="Totally audible, varying intonation", max_score=1, step=0.5),
    Criterion(id="b4", text="Self-confidence", description="Ease of presentation", max_score=1, step=0.5),
    Criterion(id="b5", text="Scientific Language", description="Use of appropriate language and vocabulary", max_score=1, step=0.5),
    Criterion(id="b6", text="Response to questions", description="Carefully listens to questions, responds clearly and intelligently", max_score=2, step=0.5),
    Criterion(id="b7", text="Presentation of project", description="Can present the project in a logical, well organized way (without reciting/ reading directly)", max_score=2, step=0.5),
    Criterion(id="b8", text="Limitations / weaknesses and gaps", description="The learner is fully aware of limitations and can explain reasons for gaps", max_score=2, step=0.5),
    Criterion(id="b9", text="Possible suggestions or expanding project / recommendation", description="The learner is fully aware of possibilities for expanding the project", max_score=2, step=0.5),
    Criterion(id="b10", text="Authenticity", description="The learner takes complete ownership of the project and integrates assistance received in their answers to questions. Can demonstrate all of the methods / techniques used.", max_score=2, step=0.5),
]

PART_C_CRITERIA: List[Criterion] = [
    Criterion(id="c1", text="Statement of the problem", description="Clear statement of the problem and objectives", max_score=2, step=0.5),
    Criterion(id="c2", text="Introduction / Background information", description="Relationship between the project and other research done in the same area", max_score=2, step=0.5),
    Criterion(id="c3", text="Application of scientific concepts to every day life", max_score=3, step=1),
    Criterion(id="c4", text="Subject mastery", description="Demonstration of deeply and accurate knowledge of scientific and engineering principles involved", max_score=3, step=1),
    Criterion(id="c5", text="Literature review", description="Project shows understanding of existing knowledge. (citations).", max_score=2, step=0.5),
    Criterion(id="c6", text="Data", description="Adequate data obtained to verify conclusions.", max_score=3, step=1),
    Criterion(id="c7", text="Variables", description="Variables/ parameters were clearly defined and recognized, controls used", max_score=2, step=0.5),
    Criterion(id="c8", text="Statement of originality", description="What inspired the person to come up with the project", max_score=2, step=0.5),
    Criterion(id="c9a", text="Logical Sequence: Apparatus / requirements", max_score=2, step=0.5),
    Criterion(id="c9b", text="Logical Sequence: Procedure / Method", max_score=2, step=0.5),
    Criterion(id="c9c", text="Logical Sequence: Correct illustrations", max_score=3, step=1),
    Criterion(id="c10", text="Linkage to emerging issues", description="Linking of the innovation with emerging issues or adds value to existing body of knowledge", max_score=2, step=0.5),
    Criterion(id="c11", text="Originality", description="Is the problem original or does the approach to the problem show originality, Does the construction or design of equipment / project show originality", max_score=3, step=1),
    Criterion(id="c12", text="Creativity", description="Have materials / equipment been used in an ingenious way, To what extent does the project / exhibit represent the student's own effort/skill", max_score=2, step=0.5),
    Criterion(id="c13", text="Skill: Was the workmanship of the display skillful?", description="Workmanship is neat, well done. Project requires minimum maintenance", max_score=2, step=0.5),
]


def max_total(criteria: List[Criterion]) -> float:
    return sum(c.max_score for c in criteria)


PART_A_MAX = max_total(PART_A_CRITERIA)
PART_B_MAX = max_total(PART_B_CRITERIA)
PART_C_MAX = max_total(PART_C_CRITERIA)
SECTION_BC_MAX = PART_B_MAX + PART_C_MAX
GRAND_TOTAL_MAX = PART_A_MAX + SECTION_BC_MAX

CRITERIA_BY_PART: Dict[str, List[Criterion]] = {
    "A": PART_A_CRITERIA,
    "B": PART_B_CRITERIA,
    "C": PART_C_CRITERIA,
}

# Parts filled in by a judge of each section
SECTION_PARTS: Dict[str, List[str]] = {
    "A": ["A"],
    "BC": ["B", "C"],
}


def criteria_for_section(section: str) -> List[Criterion]:
    return [c for part in SECTION_PARTS[section] for c in CRITERIA_BY_PART[part]]


def section_max(section: str) -> float:
    return max_total(criteria_for_section(section))
