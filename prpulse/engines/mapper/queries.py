"""GraphQL documents sent to GitHub."""

SEARCH_PULL_REQUESTS = """
query SearchPullRequests($searchQuery: String!) {
  search(query: $searchQuery, type: ISSUE, first: 50) {
    nodes {
      ... on PullRequest {
        id
        number
        title
        url
        state
        isDraft
        createdAt
        updatedAt
        mergeable
        mergeStateStatus
        author {
          login
          ... on User { id }
        }
        repository {
          name
          owner { login }
        }
        headRefOid
        reviewRequests(first: 10) {
          nodes {
            requestedReviewer {
              ... on User { login id }
              ... on Team { name id }
            }
          }
        }
        assignees(first: 10) {
          nodes { login id }
        }
        commits(last: 1) {
          nodes {
            commit {
              checkSuites(first: 10) {
                nodes {
                  checkRuns(first: 100) {
                    nodes {
                      id
                      name
                      status
                      conclusion
                      startedAt
                      completedAt
                      detailsUrl
                      checkSuite {
                        app { slug }
                        workflowRun { databaseId }
                      }
                    }
                  }
                }
              }
              status {
                contexts {
                  id
                  state
                  description
                  targetUrl
                  context
                  createdAt
                  creator {
                    login
                    ... on User { id }
                  }
                }
              }
            }
          }
        }
      }
    }
  }
}
"""
