"""
Bundled example questionnaires.

BASIC, INTERMEDIATE and ADVANCED walk through the same tool-evaluation
survey with growing use of variables, conditions, blocks and computed
values. BUDGET exercises navigation, breakdown rows, block-level
COMPUTE and list formatting.
"""
from surveytext.model import Survey
from surveytext.parser import parse_survey

BASIC_SAMPLE_TEXT = """# **Survey Tool Evaluation**

## About This Survey
Help us improve our survey creation tool by sharing your experience using it.

Q: How long have you been using this survey tool?
- Just started today
- A few days
- About a week
- Several weeks or more

Q: How many surveys have you created so far?
NUMBER

#

Q: Which types of questions do you use in your surveys?
HINT: Select all that apply
- Multiple choice questions
- Checkbox questions
- Text/essay questions
- Number questions
- Matrix questions
CHECKBOX"""

INTERMEDIATE_SAMPLE_TEXT = """# **Survey Tool Evaluation**

## About This Survey
Help us improve our survey creation tool by sharing your experience using it.

Q: How long have you been using this survey tool?
- Just started today
- A few days
- About a week
- Several weeks or more
VARIABLE: usage_time

Q: How many surveys have you created so far?
NUMBER
VARIABLE: surveys_created

#

Q: Which features have you tried so far?
HINT: Select all that apply
- Creating basic surveys
- Using conditional logic (SHOW_IF)
- Adding computed variables
- Other advanced features
  - TEXT
CHECKBOX
VARIABLE: features_tried

Q: How would you rate each aspect of the survey tool?
- Q: Ease of use
- Q: Documentation quality
- Q: Feature completeness
- Excellent
- Good
- Fair
- Poor

#
SHOW_IF: features_tried IS Using conditional logic (SHOW_IF)

Since you've tried conditional logic, we'd love your specific feedback.

Q: You've created {surveys_created} surveys so far. What would help you most?
- Better documentation
- More examples
- Video tutorials
- Simplified syntax"""

ADVANCED_SAMPLE_TEXT = """BLOCK: User Background

# **Survey Tool Evaluation**

## About This Survey
Help us improve our survey creation tool by sharing your experience using it.

Q: How long have you been using this survey tool?
- Just started today
- A few days
- About a week
- Several weeks or more
VARIABLE: usage_time

Q: How many surveys have you created so far?
NUMBER
VARIABLE: surveys_created

#

Q: Which features have you tried so far?
HINT: Select all that apply
- Creating basic surveys
- Using conditional logic (SHOW_IF)
- Adding computed variables
- Variable interpolation in text
CHECKBOX
VARIABLE: features_tried

COMPUTE: experienced_user = usage_time IS Several weeks or more AND surveys_created >= 3

BLOCK: Feature Feedback
SHOW_IF: features_tried

#

We'd like detailed feedback on the features you've used.

Q: {{IF experienced_user THEN As an experienced user ELSE As someone still learning}}, what would help you most?
- Better documentation
- More examples
- Video tutorials
- Simplified syntax

BLOCK: Overall Assessment
SHOW_IF: experienced_user

# **Advanced User Feedback**

Q: Would you recommend this tool to others?
- Yes
- No
VARIABLE: recommend

Q: You've created {surveys_created} surveys so far. {{IF recommend IS Yes THEN Thank you for recommending us! ELSE We hope we can improve your experience.}} What should we improve first?
ESSAY

BLOCK: Final Page

# **Thank You**

Thank you for taking the time to complete our survey!

{{IF recommend IS Yes THEN We appreciate your willingness to recommend the tool. ELSE Your suggestions will be used to improve the tool.}}"""

BUDGET_SAMPLE_TEXT = '''BLOCK: Household

# **About You**
NAVIGATION: 1

Q: Which of these do you spend money on each month?
- Sports
- Music
- Technology
CHECKBOX
VARIABLE: interests

# **Monthly Costs**
NAVIGATION: 2
TOOLTIP: """
Use your most recent month.

Round to whole euros.
"""

Q: What are your monthly costs?
BREAKDOWN
PREFIX: €
- HEADER: Housing
- Rent
  - VARIABLE: rent
- Insurance
  - VARIABLE: insurance
- SUBTOTAL: Housing subtotal
- SEPARATOR
- Food
  - VARIABLE: food
- Transport
  - VARIABLE: transport
- Discounts received
  - SUBTRACT
  - VARIABLE: discounts
TOTAL: Total monthly costs

BLOCK: Summary
COMPUTE: total = rent + insurance + food + transport - discounts
COMPUTE: big_spender = total > 2000

# **Budget Summary**
NAVIGATION: 1

You spend on {interests AS INLINE_LIST}.

Your monthly costs come to €{total}, of which €{rent + insurance} goes to housing.

{{IF big_spender THEN That is above the national average. ELSE That is below the national average.}}

Q: Would you like tips on saving money?
- Yes
- No
SHOW_IF: total > 0'''

SAMPLES = {
    "basic": BASIC_SAMPLE_TEXT,
    "intermediate": INTERMEDIATE_SAMPLE_TEXT,
    "advanced": ADVANCED_SAMPLE_TEXT,
    "budget": BUDGET_SAMPLE_TEXT,
}


def build_example_survey(level: str = "advanced") -> Survey:
    """Compile one of the bundled samples ("basic", "intermediate", "advanced", "budget")."""
    if level not in SAMPLES:
        raise KeyError(f"Unknown sample '{level}'. Choose from: {', '.join(SAMPLES)}")
    return parse_survey(SAMPLES[level], name=f"{level.title()} Sample")
