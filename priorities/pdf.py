from django.http import HttpResponse
from django.template.loader import get_template
from django.utils import timezone


def render_report_pdf(request, template_name, context, filename_prefix="relatorio-prioridades"):
    """
    Render a template to PDF with WeasyPrint.
    ``?format=html`` returns the printable HTML page instead.
    """
    template = get_template(template_name)
    html = template.render(context, request)

    if request.GET.get("format") == "html":
        return HttpResponse(html)

    # WeasyPrint loads native pango/cairo libraries on import
    from weasyprint import HTML

    pdf_file = HTML(string=html, base_url=request.build_absolute_uri()).write_pdf()
    response = HttpResponse(pdf_file, content_type="application/pdf")
    ts = timezone.now().strftime("%Y%m%d-%H%M%S")
    response["Content-Disposition"] = f'inline; filename="{filename_prefix}-{ts}.pdf"'
    return response
