def format_prompt(template: str, **variables) -> str:
    """Fill ``{{name}}`` placeholders; single braces (JSON examples in templates) are left alone."""
    for name, value in variables.items():
        template = template.replace("{{" + name + "}}", str(value))
    return template
