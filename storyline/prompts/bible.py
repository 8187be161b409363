FULL_BIBLE_PROMPT_V1 = """
Role: Best-selling novel architect.
Task: From the author's idea, build a complete story bible in one pass.

Author Idea: "{{idea}}"
Target Chapter Count: {{target_chapter_count}}
Target Word Count per Chapter: {{target_chapter_word_count}}
Language for all string values: {{language}}

Strict Guidelines:
1. Output MUST be one valid JSON object matching the structure below exactly.
2. The title MUST NOT contain book title marks such as 《》.
3. PLOT ARCHITECTURE: high stakes, fast pace, no filler. Every chapter has a clear conflict and ends on a hook.
4. CHARACTER DEPTH: define characters by internal conflict and active choices.
5. The outline must contain {{target_chapter_count}} chapters, in reading order.

JSON Structure:
{
  "core": {
    "title": "string",
    "theme": "string",
    "logline": "string",
    "genre": "string",
    "setting_time": "string",
    "setting_place": "string",
    "setting_world": "string",
    "style_tone": "string"
  },
  "characters": [
    {
      "name": "string",
      "role": "Protagonist" | "Antagonist" | "Supporting",
      "description": "string",
      "background": "string",
      "motivation": "string",
      "arc_or_conflict": "string"
    }
  ],
  "outline": [
    {"title": "string", "summary": "string (focus on conflict and outcome)"}
  ],
  "instructions": {
    "pov": "string",
    "pacing": "string",
    "dialogue_style": "string",
    "sensory_details": "string",
    "key_elements": "string",
    "avoid": "string"
  }
}
"""

CORE_PROMPT_V1 = """
Role: World-class novelist and creative director.
Task: Create or refine the core concept of a novel. Fill in missing fields and polish existing ones.

Current core concept:
{{current_core}}

Strict Guidelines:
1. Output MUST be one valid JSON object only.
2. Write all string values in {{language}}.
3. The title MUST NOT contain book title marks such as 《》.

Return a JSON object with these exact keys:
- title: (string) a compelling, literary title.
- theme: (string) the core theme.
- logline: (string) a one-sentence hook under 50 words with a strong conflict.
- genre: (string) the specific genre.
- setting_time: (string) era and time frame.
- setting_place: (string) places and environment details.
- setting_world: (string) world rules or key technology.
- style_tone: (string) narrative voice and atmosphere.
"""

CHARACTERS_PROMPT_V1 = """
Role: Character designer.
Context: The novel's core concept:
{{core}}

Task: Create a cast (protagonist, antagonist, 1-2 supporting characters).
If characters are provided below, refine them instead of replacing them.

Current characters:
{{current_characters}}

Strict Guidelines:
1. Output MUST be one valid JSON object only.
2. Write all string values in {{language}}.
3. The role MUST be one of "Protagonist", "Antagonist", "Supporting".

Return: {"characters": [{"name", "role", "description", "background", "motivation", "arc_or_conflict"}]}
- motivation must be specific and strong; arc_or_conflict must be dramatic.
"""

OUTLINE_PROMPT_V1 = """
Context: Build a chapter outline for a novel.
Core concept: {{core}}
Characters: {{characters}}

Task: Produce approximately {{target_chapter_count}} chapters that form a complete, compelling arc from beginning to end.

Strict Guidelines:
1. Output MUST be one valid JSON object only.
2. Write all string values in {{language}}.
3. DRAMATIC STRUCTURE: rising action, a climax and real turning points. No repetitive scenarios.

Return: {"outline": [{"title": "string", "summary": "string (key plot events and conflicts)"}]}
"""

INSTRUCTIONS_PROMPT_V1 = """
Role: Literary editor.
Context:
Core concept: {{core}}
Characters: {{characters}}

Task: Define the writing style guide for this novel.

Strict Guidelines:
1. Output MUST be one valid JSON object only.
2. Write all string values in {{language}}.

Return a JSON object with these exact keys:
- pov: (string) narrative point of view.
- pacing: (string) pacing requirements; emphasize fast, tight plotting.
- dialogue_style: (string) how characters speak.
- sensory_details: (string) which senses and details to foreground.
- key_elements: (string) recurring images or symbols.
- avoid: (string) what to avoid; explicitly include excessive physical stage directions such as nodding, sighing and walking.
"""
