"""
Built-in email templates.
"""

from typing import Any

from github_agent.single_user import get_single_user_id

REPORT_TEMPLATE_TYPE = "repository_report"

REPORT_SUBJECT = "Repository Report: {{repository_name}} - {{period_start}}"

REPORT_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{{repository_name}} Development Report</title>
  <style>
    body { margin: 0; padding: 0; background: #f4f5f7; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; color: #1f2937; }
    .container { max-width: 680px; margin: 0 auto; background: #ffffff; }
    .header { background: {{primary_color}}; color: #ffffff; padding: 32px; text-align: center; }
    .header img { max-height: 40px; margin-bottom: 12px; }
    .header-subtitle { margin: 8px 0 0; opacity: 0.85; }
    .section { padding: 24px 32px; border-bottom: 1px solid #e5e7eb; }
    .section h2 { font-size: 18px; margin: 0 0 16px; }
    .stats { width: 100%; border-collapse: collapse; }
    .stats td { width: 33%; padding: 12px; text-align: center; vertical-align: top; }
    .stat-value { font-size: 24px; font-weight: 700; color: {{primary_color}}; }
    .stat-label { font-size: 12px; color: #6b7280; text-transform: uppercase; }
    .row { display: flex; justify-content: space-between; padding: 6px 0; }
    .footer { padding: 24px 32px; text-align: center; font-size: 12px; color: #6b7280; }
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <img src="{{logo_url}}" alt="{{company_name}}">
      <h1>Development Report</h1>
      <p class="header-subtitle">{{repository_name}} &bull; {{period_start}} to {{period_end}}</p>
    </div>

    <div class="section">
      <h2>Executive Summary</h2>
      <p>{{summary}}</p>
      <p>
        The team made <strong>{{commit_count}} commits</strong> with
        <strong>{{total_lines_changed}} lines changed</strong>, resolved
        <strong>{{issues_resolved}} issues</strong> and merged
        <strong>{{prs_merged}} pull requests</strong>.
      </p>
    </div>

    <div class="section">
      <h2>Key Metrics</h2>
      <table class="stats">
        <tr>
          <td><div class="stat-value">{{commit_count}}</div><div class="stat-label">Commits ({{avg_commits_per_day}}/day)</div></td>
          <td><div class="stat-value">{{total_lines_changed}}</div><div class="stat-label">Lines changed (+{{total_lines_added}} -{{total_lines_removed}})</div></td>
          <td><div class="stat-value">{{issues_resolved}}</div><div class="stat-label">Issues resolved</div></td>
        </tr>
        <tr>
          <td><div class="stat-value">{{prs_merged}}</div><div class="stat-label">PRs merged</div></td>
          <td><div class="stat-value">{{lines_of_code}}</div><div class="stat-label">Lines of code</div></td>
          <td><div class="stat-value">{{maintainability_index}}%</div><div class="stat-label">Maintainability</div></td>
        </tr>
      </table>
    </div>

    <div class="section">
      <h2>Code Quality</h2>
      <div class="row"><span>Test coverage</span><strong>{{test_coverage}}%</strong></div>
      <div class="row"><span>Security score</span><strong>{{security_score}}%</strong></div>
      <div class="row"><span>Technical debt</span><strong>{{technical_debt_ratio}}%</strong></div>
      <div class="row"><span>Complexity</span><strong>{{complexity_score}}</strong></div>
    </div>

    <div class="section">
      <h2>Technology Stack</h2>
      {{#each language_breakdown}}
      <div class="row"><span>{{language}}</span><strong>{{percentage}}%</strong></div>
      {{/each}}
    </div>

    <div class="section">
      <h2>Team</h2>
      <p>
        {{total_contributors}} total contributors, {{active_contributors}} actively
        participating. Bus factor: {{bus_factor}}. Activity score: {{activity_score}}/100.
      </p>
      {{#each top_contributors}}
      <div class="row"><span>{{author}}</span><span>{{commit_count}} commits &bull; {{lines_added}} lines</span></div>
      {{/each}}
    </div>

    <div class="section">
      <h2>Most Active Files</h2>
      <ul>
        {{#each most_active_files}}
        <li>{{filename}} ({{changes}} changes)</li>
        {{/each}}
      </ul>
    </div>

    {{#if recommendations}}
    <div class="section">
      <h2>Recommendations</h2>
      <ul>
        {{#each recommendations}}
        <li>{{this}}</li>
        {{/each}}
      </ul>
    </div>
    {{/if}}

    <div class="footer">
      <strong>{{company_name}}</strong><br>
      This report was generated automatically from your repository activity.
    </div>
  </div>
</body>
</html>
"""

REPORT_TEXT = """{{repository_name}} Development Report
{{period_start}} to {{period_end}}

{{summary}}

Commits: {{commit_count}} ({{avg_commits_per_day}}/day)
Lines changed: {{total_lines_changed}} (+{{total_lines_added}} -{{total_lines_removed}})
Issues resolved: {{issues_resolved}}
Pull requests merged: {{prs_merged}}
Maintainability: {{maintainability_index}}%
Test coverage: {{test_coverage}}%

Recommendations:
{{#each recommendations}}- {{this}}
{{/each}}
-- {{company_name}}
"""

REPORT_VARIABLES = [
    "repository_name",
    "period_start",
    "period_end",
    "summary",
    "commit_count",
    "total_lines_changed",
    "total_lines_added",
    "total_lines_removed",
    "avg_commits_per_day",
    "issues_resolved",
    "prs_merged",
    "lines_of_code",
    "maintainability_index",
    "test_coverage",
    "security_score",
    "technical_debt_ratio",
    "complexity_score",
    "language_breakdown",
    "total_contributors",
    "active_contributors",
    "bus_factor",
    "activity_score",
    "top_contributors",
    "most_active_files",
    "recommendations",
    "company_name",
    "logo_url",
    "primary_color",
]

REPOSITORY_REPORT_TEMPLATE = {
    "subject": REPORT_SUBJECT,
    "html": REPORT_HTML,
    "text": REPORT_TEXT,
}


def default_template_row() -> dict[str, Any]:
    """Column values for seeding the default report template."""
    return {
        "user_id": get_single_user_id(),
        "name": "Default Repository Report",
        "type": REPORT_TEMPLATE_TYPE,
        "subject": REPORT_SUBJECT,
        "html_content": REPORT_HTML,
        "text_content": REPORT_TEXT,
        "variables": list(REPORT_VARIABLES),
        "is_active": True,
    }


INTEGRATION_REQUEST_SUBJECT = "New Integration Request: {{name}}"

INTEGRATION_REQUEST_HTML = """<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #2563eb;">New Integration Request</h2>
  <div style="background: #f8fafc; padding: 20px; border-radius: 8px; margin: 20px 0;">
    <h3 style="margin: 0 0 15px 0; color: #1e293b;">Integration Details</h3>
    <p><strong>Type:</strong> {{type}}</p>
    <p><strong>Name:</strong> {{name}}</p>
    <p><strong>Requested by:</strong> {{requested_by}}</p>
    <p><strong>Submitted:</strong> {{submitted}}</p>
  </div>
  <div style="background: #f1f5f9; padding: 20px; border-radius: 8px; margin: 20px 0;">
    <h3 style="margin: 0 0 15px 0; color: #1e293b;">What they want implemented:</h3>
    <p style="white-space: pre-wrap; line-height: 1.6;">{{details}}</p>
  </div>
  {{#if description}}<div style="background: #f1f5f9; padding: 20px; border-radius: 8px; margin: 20px 0;">
    <h3 style="margin: 0 0 15px 0; color: #1e293b;">Additional Context:</h3>
    <p style="white-space: pre-wrap; line-height: 1.6;">{{description}}</p>
  </div>{{/if}}
  <div style="background: #dbeafe; padding: 20px; border-radius: 8px; margin: 20px 0;">
    <h3 style="margin: 0 0 15px 0; color: #1d4ed8;">Next Steps</h3>
    <ul style="margin: 0; padding-left: 20px;">
      <li>Review the integration request details</li>
      <li>Assess technical feasibility and priority</li>
      <li>Add to development roadmap if approved</li>
      {{#if user_email}}<li>Follow up with requester at: {{user_email}}</li>{{/if}}
    </ul>
  </div>
  <p style="color: #64748b; font-size: 14px; margin-top: 30px;">
    This request was submitted via the GitHub Helper dashboard integration request form.
  </p>
</div>
"""
