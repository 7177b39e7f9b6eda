from typing import Dict

from flask_wtf import FlaskForm
from wtforms import SelectField, StringField, SubmitField, TextAreaField
from wtforms.validators import InputRequired, Length, Optional

STORY_LENGTH_CHOICES = [("Short", "Short"), ("Medium", "Medium"), ("Long", "Long")]
MODE_CHOICES = [
    ("structured", "Review the outline first"),
    ("classic", "Write the whole story in one go"),
]

# Form attribute -> key used by the prompt templates and the session store.
STORY_INPUT_FIELDS = {
    "story_title": "storyTitle",
    "genre": "genre",
    "target_audience": "targetAudience",
    "protagonist_name": "protagonistName",
    "protagonist_description": "protagonistDescription",
    "key_motivation": "keyMotivation",
    "primary_location": "primaryLocation",
    "atmosphere_mood": "atmosphereMood",
    "key_features": "keyFeatures",
    "supporting_character_name": "supportingCharacterName",
    "supporting_character_role": "supportingCharacterRole",
    "supporting_character_description": "supportingCharacterDescription",
    "key_item_name": "keyItemName",
    "key_item_significance": "keyItemSignificance",
    "core_conflict": "coreConflict",
    "desired_story_length": "desiredStoryLength",
    "desired_endings": "desiredEndings",
    "writing_style": "writingStyle",
}


class StorySetupForm(FlaskForm):
    story_title = StringField("Story title", validators=[InputRequired(), Length(min=3, max=150)])
    genre = StringField("Genre", validators=[InputRequired(), Length(min=3, max=120)])
    target_audience = StringField("Target audience", validators=[InputRequired(), Length(min=3, max=120)])
    protagonist_name = StringField("Protagonist name", validators=[InputRequired(), Length(min=2, max=120)])
    protagonist_description = TextAreaField(
        "Protagonist description",
        validators=[InputRequired(), Length(min=10, max=2000)],
    )
    key_motivation = StringField("Key motivation", validators=[InputRequired(), Length(min=5, max=500)])
    primary_location = StringField("Primary location(s)", validators=[InputRequired(), Length(min=5, max=500)])
    atmosphere_mood = StringField("Atmosphere / mood", validators=[InputRequired(), Length(min=5, max=500)])
    key_features = TextAreaField("Key features of the setting", validators=[InputRequired(), Length(min=5, max=2000)])
    supporting_character_name = StringField("Supporting character name", validators=[Optional(), Length(max=120)])
    supporting_character_role = StringField("Supporting character role", validators=[Optional(), Length(max=120)])
    supporting_character_description = TextAreaField(
        "Supporting character description",
        validators=[Optional(), Length(max=2000)],
    )
    key_item_name = StringField("Key item name", validators=[Optional(), Length(max=120)])
    key_item_significance = StringField("Key item significance", validators=[Optional(), Length(max=500)])
    core_conflict = TextAreaField(
        "Core conflict / inciting incident",
        validators=[InputRequired(), Length(min=10, max=2000)],
    )
    desired_story_length = SelectField("Desired story length", choices=STORY_LENGTH_CHOICES, default="Medium")
    desired_endings = StringField(
        "Desired number of endings",
        validators=[InputRequired(), Length(min=1, max=20)],
        description="For example 2, 3 or 4+",
    )
    writing_style = StringField("Writing style", validators=[InputRequired(), Length(min=5, max=500)])
    mode = SelectField("Generation mode", choices=MODE_CHOICES, default="structured")
    submit = SubmitField("Create my adventure")

    def to_story_input(self) -> Dict[str, str]:
        return {
            key: (getattr(self, attribute).data or "").strip()
            for attribute, key in STORY_INPUT_FIELDS.items()
        }

    def load_story_input(self, story_input: Dict[str, str]) -> None:
        for attribute, key in STORY_INPUT_FIELDS.items():
            if story_input.get(key):
                getattr(self, attribute).data = story_input[key]
