import flet as ft


class EditorTheme:
    """
    Chrome for the markdown field. Colors are Material color scheme roles so
    the field follows whatever theme the host page sets.
    """

    font_family = "Inter"
    code_font_family = "JetBrains Mono"
    accent = "#16a085"

    toolbar_bgcolor = "surfaceVariant"
    menu_bgcolor = "surface"
    menu_selected_bgcolor = "secondaryContainer"
    border_color = "outlineVariant"
    border_radius = 8

    @classmethod
    def page_theme(cls) -> ft.Theme:
        """Theme for the demo page."""
        return ft.Theme(color_scheme_seed=cls.accent, font_family=cls.font_family, use_material3=True)

    @classmethod
    def code_style(cls) -> ft.TextStyle:
        return ft.TextStyle(font_family=cls.code_font_family, size=14)
